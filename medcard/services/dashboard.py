from typing import Optional

from django.db.models import Q

from medcard.models import HealthProfile, MedicalRecord, User
from medcard.services.serialization import user_dict
from medcard.services.stores import SharingStore

RECENT_ACCESS_COUNT = 10


def admin_summary(store: SharingStore) -> dict:
    recent, _ = store.list_access_logs(offset=0, limit=RECENT_ACCESS_COUNT)
    return {
        'totalUsers': User.objects.count(),
        'totalPatients': User.objects.filter(role=User.ROLE_PATIENT).count(),
        'totalProviders': User.objects.filter(role=User.ROLE_PROVIDER).count(),
        'totalProfiles': HealthProfile.objects.count(),
        'totalRecords': MedicalRecord.objects.filter(deleted=False).count(),
        'recentAccesses': recent,
    }


def search_users(*, q: Optional[str] = None, page: int = 1, limit: int = 20) -> tuple[list[dict], int]:
    qs = User.objects.order_by('-date_joined', '-id')
    if q:
        qs = qs.filter(Q(full_name__icontains=q) | Q(email__icontains=q))
    total = qs.count()
    start = (page - 1) * limit
    return [user_dict(u) for u in qs[start:start + limit]], total
