from django.urls import path
from . import views

urlpatterns = [
    # ── Patient sign-up ──────────────────────────────────────
    path('register/', views.PatientRegisterView.as_view(), name='patient-register'),

    # ── Login (contact + password → JWT) ─────────────────────
    path('login/', views.LoginView.as_view(), name='login'),
    path('token/refresh/', views.RefreshTokenView.as_view(), name='token-refresh'),

    # ── Current user ─────────────────────────────────────────
    path('me/', views.CurrentUser.as_view(), name='current-user'),
]
