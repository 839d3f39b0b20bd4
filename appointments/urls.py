from django.urls import path
from . import views

urlpatterns = [
    # Patient routes
    path('my/', views.PatientAppointmentListView.as_view(), name='patient-appointments'),
    path('my/<int:pk>/', views.PatientAppointmentDetailView.as_view(), name='patient-appointment-detail'),

    # Doctor routes
    path('doctor/', views.DoctorAppointmentListView.as_view(), name='doctor-appointments'),
    path('doctor/follow-ups/', views.DoctorFollowUpListView.as_view(), name='doctor-follow-ups'),
    path('doctor/<int:pk>/', views.DoctorAppointmentDetailView.as_view(), name='doctor-appointment-detail'),
    path('doctor/<int:pk>/notes/', views.DoctorAppointmentNotesView.as_view(), name='doctor-appointment-notes'),
    path('doctor/<int:pk>/follow-up/', views.DoctorFollowUpView.as_view(), name='doctor-appointment-follow-up'),

    # Notifications
    path('notifications/', views.NotificationListView.as_view(), name='notifications'),
    path('notifications/read-all/', views.NotificationReadAllView.as_view(), name='notifications-read-all'),
    path('notifications/<int:pk>/read/', views.NotificationReadView.as_view(), name='notification-read'),
]
