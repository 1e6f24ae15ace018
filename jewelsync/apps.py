import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class JewelSyncConfig(AppConfig):
    name = 'jewelsync'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        """
        Run when Django app is ready.

        Logs the entities whose REPLACE restore has no protected record.
        """
        from jewelsync.sync.conflicts import KNOWN_PROTECTION_GAPS

        logger.debug(
            f"REPLACE restore writes unconditionally for: {', '.join(sorted(KNOWN_PROTECTION_GAPS))}"
        )
