import logging

from django.apps import AppConfig

logger = logging.getLogger("multimail")


class MultimailConfig(AppConfig):
    name = "multimail"
    verbose_name = "MultiMail Inbound Email"

    def ready(self):
        self._configure_autoresponse_detection()

    def _configure_autoresponse_detection(self):
        """Install the AUTORESPONSE_PATTERN setting as the process-wide default."""
        from multimail.conf import get_setting
        from multimail.mail import autoresponse

        pattern = get_setting("AUTORESPONSE_PATTERN")
        if pattern is None:
            return

        autoresponse.setup(autoresponse_pattern=pattern)
        logger.info(f"Autoresponse detection configured with pattern {pattern!r}")
