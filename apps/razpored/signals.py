"""Signal receivers moving the assignment revision with every assignment write."""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Assignment
from .sync import bump_revision


@receiver(post_save, sender=Assignment, dispatch_uid="razpored-revision-save")
@receiver(post_delete, sender=Assignment, dispatch_uid="razpored-revision-delete")
def assignment_changed(sender, **kwargs):
    bump_revision()
