from django.utils import timezone
from rest_framework import status, permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
from django_filters import rest_framework as df_filters
from drf_spectacular.utils import extend_schema, OpenApiParameter

from careslot.identity import identity_for
from doctors.models import TimeSlot
from . import booking, followups, transitions
from .models import Appointment, Notification
from .permissions import IsDoctor, IsPatient
from .serializers import (
    AppointmentSerializer, AppointmentDetailSerializer, SlotBookingSerializer,
    DirectBookingSerializer, CancelSerializer, DoctorActionSerializer,
    NotesSerializer, FollowUpSerializer, NotificationSerializer,
)


# ─────────────────────────────────────────────
# Filters
# ─────────────────────────────────────────────

class AppointmentFilter(df_filters.FilterSet):
    date = df_filters.DateFilter(field_name='appointment_date')
    from_date = df_filters.DateFilter(field_name='appointment_date', lookup_expr='gte')
    to_date = df_filters.DateFilter(field_name='appointment_date', lookup_expr='lte')
    status = df_filters.ChoiceFilter(field_name='status', choices=Appointment.STATUS_CHOICES)
    appointment_type = df_filters.ChoiceFilter(field_name='appointment_type', choices=Appointment.TYPE_CHOICES)

    class Meta:
        model = Appointment
        fields = ['date', 'from_date', 'to_date', 'status', 'appointment_type']


def _filtered(request, view, qs):
    return DjangoFilterBackend().filter_queryset(request, qs, view)


# ─────────────────────────────────────────────
# Patient: Book & Manage Their Appointments
# ─────────────────────────────────────────────

@extend_schema(tags=['Appointments'])
class PatientAppointmentListView(APIView):
    """
    GET  – list all appointments for the logged-in patient
    POST – book an appointment, either a published slot ({"time_slot": 12})
           or a direct window ({"doctor": 3, "date": "2025-06-10", "time": "09:30"})
    """
    permission_classes = [permissions.IsAuthenticated, IsPatient]
    filterset_class = AppointmentFilter

    @extend_schema(responses={200: AppointmentSerializer(many=True)})
    def get(self, request):
        qs = Appointment.objects.filter(
            patient_id=identity_for(request).patient_id).select_related('patient', 'doctor__user')
        return Response(AppointmentSerializer(_filtered(request, self, qs), many=True).data)

    @extend_schema(request=SlotBookingSerializer, responses={201: AppointmentSerializer})
    def post(self, request):
        patient_id = identity_for(request).patient_id

        if 'time_slot' in request.data:
            serializer = SlotBookingSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            if TimeSlot.objects.filter(pk=data['time_slot'], start_time__lte=timezone.now()).exists():
                return Response({'message': 'Cannot book a time slot in the past.'},
                                status=status.HTTP_400_BAD_REQUEST)
            appointment = booking.reserve(
                data['time_slot'], patient_id,
                appointment_type=data['appointment_type'], reason=data.get('reason'),
            )
        else:
            serializer = DirectBookingSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            appointment = booking.reserve_direct(
                data['doctor'], patient_id, data['date'], data['time'],
                duration_minutes=data.get('duration_minutes'),
                appointment_type=data['appointment_type'],
                reason=data.get('reason'),
            )

        return Response(
            {'message': 'Appointment request sent successfully.',
             'appointment': AppointmentSerializer(appointment).data},
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=['Appointments'])
class PatientAppointmentDetailView(APIView):
    """Patient: get or cancel a specific appointment."""
    permission_classes = [permissions.IsAuthenticated, IsPatient]

    def get_object(self, pk, patient_id):
        try:
            return Appointment.objects.select_related('patient', 'doctor__user').get(pk=pk, patient_id=patient_id)
        except Appointment.DoesNotExist:
            return None

    @extend_schema(responses={200: AppointmentDetailSerializer})
    def get(self, request, pk):
        appt = self.get_object(pk, identity_for(request).patient_id)
        if not appt:
            return Response({'message': 'Appointment not found.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(AppointmentDetailSerializer(appt).data)

    @extend_schema(request=CancelSerializer, responses={200: AppointmentSerializer})
    def put(self, request, pk):
        """Patient can only cancel their appointment."""
        appt = self.get_object(pk, identity_for(request).patient_id)
        if not appt:
            return Response({'message': 'Appointment not found.'}, status=status.HTTP_404_NOT_FOUND)

        new_status = request.data.get('status')
        if new_status and new_status != Appointment.CANCELLED:
            return Response({'message': 'Patients can only cancel appointments.'}, status=status.HTTP_403_FORBIDDEN)

        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appt = transitions.cancel(
            appt.id, transitions.PATIENT, reason=serializer.validated_data.get('cancellation_reason'))
        return Response(AppointmentSerializer(appt).data)


# ─────────────────────────────────────────────
# Doctor: View & Manage Their Appointments
# ─────────────────────────────────────────────

@extend_schema(
    tags=['Appointments'],
    parameters=[
        OpenApiParameter('date', str, OpenApiParameter.QUERY, description='YYYY-MM-DD', required=False),
        OpenApiParameter('status', str, OpenApiParameter.QUERY,
                         description='pending, confirmed, completed, cancelled', required=False),
    ],
    responses={200: AppointmentSerializer(many=True)},
)
class DoctorAppointmentListView(APIView):
    """
    Doctor: view all appointments on their schedule.
    Supports ?date=, ?from_date=, ?to_date=, ?status= and ?appointment_type= filters.
    """
    permission_classes = [permissions.IsAuthenticated, IsDoctor]
    filterset_class = AppointmentFilter

    def get(self, request):
        qs = Appointment.objects.filter(
            doctor_id=identity_for(request).doctor_id).select_related('patient', 'doctor__user')
        return Response(AppointmentSerializer(_filtered(request, self, qs), many=True).data)


class DoctorAppointmentMixin:
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    def get_object(self, request, pk):
        try:
            return Appointment.objects.select_related('patient', 'doctor__user').get(
                pk=pk, doctor_id=identity_for(request).doctor_id)
        except Appointment.DoesNotExist:
            return None

    def not_found(self):
        return Response({'message': 'Appointment not found.'}, status=status.HTTP_404_NOT_FOUND)


@extend_schema(tags=['Appointments'])
class DoctorAppointmentDetailView(DoctorAppointmentMixin, APIView):
    """Doctor: confirm, reject, complete or cancel an appointment."""

    @extend_schema(responses={200: AppointmentDetailSerializer})
    def get(self, request, pk):
        appt = self.get_object(request, pk)
        if not appt:
            return self.not_found()
        return Response(AppointmentDetailSerializer(appt).data)

    @extend_schema(request=DoctorActionSerializer, responses={200: AppointmentSerializer})
    def put(self, request, pk):
        appt = self.get_object(request, pk)
        if not appt:
            return self.not_found()

        serializer = DoctorActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        action = data['action']

        if action == DoctorActionSerializer.CONFIRM:
            appt = transitions.confirm(appt.id)
        elif action == DoctorActionSerializer.REJECT:
            appt = transitions.reject(appt.id, reason=data.get('reason'))
        elif action == DoctorActionSerializer.CANCEL:
            appt = transitions.cancel(appt.id, transitions.DOCTOR, reason=data.get('reason'))
        else:
            appt = transitions.complete(
                appt.id,
                notes=data.get('notes'),
                prescription=data.get('prescription'),
                follow_up_date=data.get('follow_up_date'),
            )
        return Response(AppointmentSerializer(appt).data)


@extend_schema(tags=['Appointments'], request=NotesSerializer, responses={200: AppointmentSerializer})
class DoctorAppointmentNotesView(DoctorAppointmentMixin, APIView):

    def put(self, request, pk):
        appt = self.get_object(request, pk)
        if not appt:
            return self.not_found()
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appt = transitions.update_notes(appt.id, serializer.validated_data['notes'])
        return Response(AppointmentSerializer(appt).data)


@extend_schema(tags=['Follow-ups'])
class DoctorFollowUpView(DoctorAppointmentMixin, APIView):
    """
    PUT  – set, move or clear the follow-up date of a completed appointment
    POST – send the follow-up reminder now
    """

    @extend_schema(request=FollowUpSerializer, responses={200: AppointmentSerializer})
    def put(self, request, pk):
        appt = self.get_object(request, pk)
        if not appt:
            return self.not_found()
        serializer = FollowUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appt = transitions.set_follow_up(appt.id, serializer.validated_data['follow_up_date'])
        return Response(AppointmentSerializer(appt).data)

    @extend_schema(request=None)
    def post(self, request, pk):
        appt = self.get_object(request, pk)
        if not appt:
            return self.not_found()
        sent = followups.dispatch(appt.id)
        message = 'Follow-up reminder sent.' if sent else 'Follow-up reminder was already sent.'
        return Response({'message': message, 'sent': sent})


@extend_schema(
    tags=['Follow-ups'],
    parameters=[
        OpenApiParameter('upcoming', bool, OpenApiParameter.QUERY, required=False),
        OpenApiParameter('overdue', bool, OpenApiParameter.QUERY, required=False),
        OpenApiParameter('sent', bool, OpenApiParameter.QUERY, required=False),
    ],
    responses={200: AppointmentSerializer(many=True)},
)
class DoctorFollowUpListView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    def get(self, request):
        params = request.query_params
        sent = params.get('sent')
        qs = followups.list_follow_ups(
            identity_for(request).doctor_id,
            upcoming=params.get('upcoming') == 'true',
            overdue=params.get('overdue') == 'true',
            sent=None if sent is None else sent == 'true',
        )
        return Response(AppointmentSerializer(qs, many=True).data)


# ─────────────────────────────────────────────
# Notifications
# ─────────────────────────────────────────────

@extend_schema(tags=['Notifications'], responses={200: NotificationSerializer(many=True)})
class NotificationListView(APIView):
    """Current user's notifications, newest first. ?unread=true for unread only."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        qs = Notification.objects.filter(user=request.user)
        if request.query_params.get('unread') == 'true':
            qs = qs.filter(is_read=False)
        return Response({
            'unread_count': Notification.objects.filter(user=request.user, is_read=False).count(),
            'notifications': NotificationSerializer(qs, many=True).data,
        })


@extend_schema(tags=['Notifications'], request=None, responses={200: NotificationSerializer})
class NotificationReadView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, pk):
        try:
            notification = Notification.objects.get(pk=pk, user=request.user)
        except Notification.DoesNotExist:
            return Response({'message': 'Notification not found.'}, status=status.HTTP_404_NOT_FOUND)
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)


@extend_schema(tags=['Notifications'], request=None)
class NotificationReadAllView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request):
        updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
        return Response({'message': f'{updated} notifications marked as read.'})
