from django.db import models
from django.core.cache import cache
from django.conf import settings

class PlatformSetting(models.Model):
    # --- General ---
    site_name = models.CharField(max_length=100, default="CBT Platform")
    maintenance_mode = models.BooleanField(default=False, help_text="Blocks students from starting new attempts")

    # --- Exam Defaults ---
    default_pass_mark = models.PositiveIntegerField(default=50, help_text="Default pass mark percentage")
    default_exam_duration = models.PositiveIntegerField(default=60, help_text="Default duration in minutes")

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    class Action(models.TextChoices):
        START = "START", "Attempt Started"
        SUBMIT = "SUBMIT", "Attempt Submitted"
        EXPIRE = "EXPIRE", "Attempt Auto-Submitted"

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=Action.choices)
    target_model = models.CharField(max_length=50, help_text="e.g., StudentExam")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    @classmethod
    def record(cls, action, target, actor=None, details=''):
        return cls.objects.create(
            actor=actor,
            action=action,
            target_model=type(target).__name__,
            target_object_id=str(target.pk),
            details=details,
        )

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"
