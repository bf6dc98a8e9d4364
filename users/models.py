# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class School(models.Model):
    """A tenant. Every tutor, student and exam belongs to exactly one school."""
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class User(AbstractUser):
    class Role(models.TextChoices):
        SCHOOL_ADMIN = "school_admin", "School Admin"
        TUTOR = "tutor", "Tutor"
        STUDENT = "student", "Student"

    # Enforce unique email for authentication
    email = models.EmailField(unique=True)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)
    school = models.ForeignKey(School, on_delete=models.CASCADE, null=True, blank=True, related_name='members')
    registration_number = models.CharField(max_length=50, blank=True)

    # Set email as the main field for authentication
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'first_name', 'last_name']

    @property
    def is_student(self):
        return self.role == self.Role.STUDENT

    @property
    def is_school_staff(self):
        return self.role in (self.Role.SCHOOL_ADMIN, self.Role.TUTOR)

    def __str__(self):
        return self.email
