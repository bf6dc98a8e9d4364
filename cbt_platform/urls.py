from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication ---
    path('api/auth/', include('users.urls')),

    # --- Exams (tutor / school admin) ---
    path('api/', include('exams.urls')),

    # --- Exam taking & results ---
    path('api/', include('assessments.urls')),
]
