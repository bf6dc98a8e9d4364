from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import School, User

admin.site.register(School)


@admin.register(User)
class CBTUserAdmin(UserAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'school')
    list_filter = ('role', 'school')
    fieldsets = UserAdmin.fieldsets + (
        ('School', {'fields': ('role', 'school', 'registration_number')}),
    )
