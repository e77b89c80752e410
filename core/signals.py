import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver
from rest_framework.authtoken.models import Token

logger = logging.getLogger(__name__)


# ----------------- Issue an API token for every new account -----------------
@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_token_for_account(sender, instance, created, **kwargs):
    if created:
        Token.objects.get_or_create(user=instance)
        logger.info("Account created: id=%s role=%s", instance.pk, instance.role)
