"""Signal handlers for files app."""

import logging
from typing import Final

from django.apps import AppConfig
from django.conf import settings
from django.contrib.auth.models import AbstractUser, Group, Permission
from django.core.signals import setting_changed
from django.db.models.signals import post_migrate, post_save
from django.dispatch import receiver

from server.apps.files.infrastructure.providers import reset_storage_provider

logger = logging.getLogger(__name__)

# Everything a regular user may do with their own files
_FILE_USER_PERMISSIONS: Final = (
    'view_filerecord',
    'add_filerecord',
    'change_filerecord',
    'delete_filerecord',
)


@receiver(setting_changed)
def reload_storage_provider(
    sender: object,
    setting: str,
    **kwargs: object,
) -> None:
    """Drop the cached storage provider when its settings change.

    Settings only change at runtime under ``override_settings``, which is
    how tests switch between providers.

    Args:
        sender: Signal sender.
        setting: Name of the changed setting.
        **kwargs: Additional signal arguments.
    """
    if setting != 'FILE_STORAGE':
        return

    logger.debug('FILE_STORAGE changed, resetting storage provider')
    reset_storage_provider()


@receiver(post_migrate)
def create_file_users_group(
    sender: AppConfig,
    using: str = 'default',
    **kwargs: object,
) -> None:
    """Create the group granting the file permissions.

    Runs after auth created this app's permissions, which happens on the
    same ``post_migrate`` signal.

    Args:
        sender: App config that was migrated.
        using: Database alias.
        **kwargs: Additional signal arguments.
    """
    if sender.label != 'files':
        return

    group, created = Group.objects.using(using).get_or_create(
        name=settings.FILES_USER_GROUP,
    )
    permissions = Permission.objects.using(using).filter(
        content_type__app_label='files',
        codename__in=_FILE_USER_PERMISSIONS,
    )
    group.permissions.add(*permissions)
    if created:
        logger.info('Created group: %s', group.name)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def add_user_to_file_users_group(
    sender: type[AbstractUser],
    instance: AbstractUser,
    created: bool,
    **kwargs: object,
) -> None:
    """Let every new user manage their own files.

    Args:
        sender: User model class.
        instance: Saved user.
        created: Whether the user was just created.
        **kwargs: Additional signal arguments.
    """
    if not created:
        return

    group = Group.objects.filter(name=settings.FILES_USER_GROUP).first()
    if group is None:
        logger.warning(
            'Group %s is missing, user %s gets no file permissions',
            settings.FILES_USER_GROUP,
            instance.pk,
        )
        return

    instance.groups.add(group)
