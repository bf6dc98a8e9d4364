from django.urls import path
from .views import CustomLoginView, UserProfileView

urlpatterns = [
    path('login/', CustomLoginView.as_view(), name='login'),
    path('me/', UserProfileView.as_view(), name='profile'),
]
