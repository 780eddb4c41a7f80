from django.apps import AppConfig
from django.conf import settings
from django.utils.module_loading import import_string


class MedcardConfig(AppConfig):
    """Health card app.

    The sharing store is created once when the app registry is ready and
    handed to request handlers through :func:`medcard.services.stores.get_store`.
    """
    name = 'medcard'
    verbose_name = 'Health card'
    default_auto_field = 'django.db.models.BigAutoField'

    store = None

    def ready(self):
        self.store = import_string(settings.MEDCARD_STORE)()
