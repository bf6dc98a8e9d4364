from rest_framework import permissions


class IsStudent(permissions.BasePermission):
    """Only students may sit exams."""
    message = "Only students can take exams."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and getattr(request.user, 'role', '') == 'student'
        )


class IsSchoolStaff(permissions.BasePermission):
    """
    Allows access to school admins and tutors of a school.
    Strictly blocks students.
    """
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return (
            getattr(request.user, 'role', '') in ['school_admin', 'tutor']
            and request.user.school_id is not None
        )
