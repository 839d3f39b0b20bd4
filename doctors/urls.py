from django.urls import path
from . import views

urlpatterns = [
    # Public doctor listing & detail
    path('', views.DoctorListView.as_view(), name='doctor-list'),
    path('<int:pk>/', views.DoctorDetailView.as_view(), name='doctor-detail'),

    # Doctor manages own profile
    path('me/', views.MyDoctorProfile.as_view(), name='my-doctor-profile'),

    # Weekly schedule
    path('<int:doctor_id>/availability/', views.DoctorAvailabilityView.as_view(), name='doctor-availability'),
    path('me/availability/', views.DoctorAvailabilityView.as_view(), name='my-availability'),

    # Time slots
    path('<int:doctor_id>/slots/', views.DoctorOpenSlotsView.as_view(), name='doctor-open-slots'),
    path('me/slots/', views.MySlotsView.as_view(), name='my-slots'),
    path('me/slots/generate/', views.GenerateSlotsView.as_view(), name='my-slots-generate'),
    path('me/slots/<int:slot_id>/', views.MySlotDetailView.as_view(), name='my-slot-detail'),

    # Blocked dates
    path('me/blocked-dates/', views.BlockedDatesView.as_view(), name='my-blocked-dates'),
    path('me/blocked-dates/<int:blocked_id>/', views.BlockedDateDetailView.as_view(), name='my-blocked-date-detail'),
]
