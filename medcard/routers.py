"""
URL mappings for the health card API.

Trailing slashes are deliberately omitted.  The public disclosure routes
are exposed twice: the short form printed in QR codes (``/e/...``,
``/share/...``) and an ``/api/public/`` alias for API clients.
"""
from django.urls import path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view, register_view
from .views import cards, dashboard, files, health, public, records, share_tokens

urlpatterns = [
    # Health check
    path('health', health.healthz, name='healthz'),

    # Auth
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),

    # Health card
    path('api/user/me', cards.my_card, name='my_card'),
    path('api/user/me/health', cards.upsert_health, name='upsert_health'),
    path('api/user/me/public-id', cards.my_public_id, name='my_public_id'),
    path('api/user/me/qr', cards.my_qr, name='my_qr'),

    # Medical records & attachments
    path('api/records', records.records, name='records'),
    path('api/records/<str:record_id>', records.record_detail, name='record_detail'),
    path('api/files/upload', files.upload_file, name='upload_file'),
    path('api/files/<int:file_id>', files.delete_file, name='delete_file'),

    # Share tokens (owner side)
    path('api/share-tokens', share_tokens.share_tokens, name='share_tokens'),

    # Admin
    path('api/admin/summary', dashboard.summary, name='admin_summary'),
    path('api/admin/users', dashboard.users, name='admin_users'),
    path('api/admin/access-logs', dashboard.access_logs, name='admin_access_logs'),

    # Public disclosure
    path('e/<str:public_id>', public.public_emergency, name='public_emergency'),
    path('share/<str:token>', public.public_share, name='public_share'),
    path('api/public/e/<str:public_id>', public.public_emergency, name='api_public_emergency'),
    path('api/public/share/<str:token>', public.public_share, name='api_public_share'),
]
