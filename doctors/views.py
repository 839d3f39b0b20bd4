from datetime import date

from django.utils import timezone
from rest_framework import status, permissions, filters
from rest_framework.exceptions import ValidationError
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
from django_filters import rest_framework as df_filters
from drf_spectacular.utils import extend_schema, OpenApiParameter

from appointments.permissions import IsDoctor
from careslot.identity import identity_for
from . import blocked_dates, slots
from .models import DoctorProfile, DoctorAvailability, BlockedDate, TimeSlot
from .serializers import (
    DoctorProfileSerializer, DoctorProfileWriteSerializer, DoctorAvailabilitySerializer,
    TimeSlotSerializer, TimeSlotCreateSerializer, TimeSlotUpdateSerializer,
    SlotGenerationSerializer, GenerationResultSerializer, BlockedDateSerializer,
)


def _parse_date(value, name):
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError({name: 'Invalid date format. Use YYYY-MM-DD.'})


# ─────────────────────────────────────────────
# Filters
# ─────────────────────────────────────────────

class DoctorFilter(df_filters.FilterSet):
    city = df_filters.CharFilter(field_name='clinic_location', lookup_expr='icontains')
    specialty = df_filters.CharFilter(field_name='specialty', lookup_expr='icontains')
    min_fee = df_filters.NumberFilter(field_name='consultation_fee', lookup_expr='gte')
    max_fee = df_filters.NumberFilter(field_name='consultation_fee', lookup_expr='lte')
    video = df_filters.BooleanFilter(field_name='offers_video_consultation')

    class Meta:
        model = DoctorProfile
        fields = ['specialty', 'min_fee', 'max_fee', 'video']


# ─────────────────────────────────────────────
# Doctor Profile
# ─────────────────────────────────────────────

@extend_schema(tags=['Doctors'], responses={200: DoctorProfileSerializer})
class DoctorListView(ListAPIView):
    """
    Public: list all active, verified doctors.
    Filter by ?specialty=, ?city=, ?min_fee=, ?max_fee=, ?video=
    """
    permission_classes = [permissions.AllowAny]
    serializer_class = DoctorProfileSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = DoctorFilter
    search_fields = ['user__name', 'specialty']
    ordering_fields = ['consultation_fee', 'experience_years']

    def get_queryset(self):
        return DoctorProfile.objects.filter(
            is_active=True, is_verified=True,
        ).select_related('user').prefetch_related('availability').order_by('id')


@extend_schema(tags=['Doctors'], responses={200: DoctorProfileSerializer})
class DoctorDetailView(APIView):
    """Public: get a single doctor's full profile."""
    permission_classes = [permissions.AllowAny]

    def get(self, request, pk):
        try:
            doctor = DoctorProfile.objects.select_related('user').prefetch_related(
                'availability').get(pk=pk, is_active=True)
        except DoctorProfile.DoesNotExist:
            return Response({'message': 'Doctor not found.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(DoctorProfileSerializer(doctor).data)


@extend_schema(tags=['Doctors'], responses={200: DoctorProfileSerializer})
class MyDoctorProfile(APIView):
    """Authenticated doctor: get or update own professional profile."""
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    def get(self, request):
        profile = DoctorProfile.objects.get(pk=identity_for(request).doctor_id)
        return Response(DoctorProfileSerializer(profile).data)

    def put(self, request):
        profile = DoctorProfile.objects.get(pk=identity_for(request).doctor_id)
        serializer = DoctorProfileWriteSerializer(profile, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(DoctorProfileSerializer(profile).data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# ─────────────────────────────────────────────
# Weekly schedule
# ─────────────────────────────────────────────

@extend_schema(tags=['Doctor Availability'], responses={200: DoctorAvailabilitySerializer})
class DoctorAvailabilityView(APIView):
    """
    GET    – public: a doctor's weekly schedule
    POST   – doctor adds a weekly window to their own schedule
    PUT    – doctor updates a window (pass availability_id in request body)
    DELETE – doctor removes a window (?availability_id=)
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsDoctor()]

    def _own_window(self, request, availability_id):
        try:
            return DoctorAvailability.objects.get(pk=availability_id, doctor_id=identity_for(request).doctor_id)
        except (DoctorAvailability.DoesNotExist, ValueError):
            return None

    def get(self, request, doctor_id):
        if not DoctorProfile.objects.filter(pk=doctor_id).exists():
            return Response({'message': 'Doctor not found.'}, status=status.HTTP_404_NOT_FOUND)
        qs = DoctorAvailability.objects.filter(doctor_id=doctor_id, is_active=True)
        return Response(DoctorAvailabilitySerializer(qs, many=True).data)

    def post(self, request, doctor_id=None):
        serializer = DoctorAvailabilitySerializer(data=request.data)
        if serializer.is_valid():
            serializer.save(doctor_id=identity_for(request).doctor_id)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    def put(self, request, doctor_id=None):
        window = self._own_window(request, request.data.get('availability_id'))
        if not window:
            return Response({'message': 'Availability not found.'}, status=status.HTTP_404_NOT_FOUND)
        serializer = DoctorAvailabilitySerializer(window, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    def delete(self, request, doctor_id=None):
        window = self._own_window(request, request.query_params.get('availability_id'))
        if not window:
            return Response({'message': 'Availability not found.'}, status=status.HTTP_404_NOT_FOUND)
        window.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# ─────────────────────────────────────────────
# Time slots
# ─────────────────────────────────────────────

@extend_schema(
    tags=['Time Slots'],
    parameters=[
        OpenApiParameter('from', str, description='YYYY-MM-DD'),
        OpenApiParameter('to', str, description='YYYY-MM-DD'),
    ],
    responses={200: TimeSlotSerializer(many=True)},
)
class DoctorOpenSlotsView(APIView):
    """Public: bookable slots of a doctor, optionally limited to ?from=&to= dates."""
    permission_classes = [permissions.AllowAny]

    def get(self, request, doctor_id):
        if not DoctorProfile.objects.filter(pk=doctor_id, is_active=True).exists():
            return Response({'message': 'Doctor not found.'}, status=status.HTTP_404_NOT_FOUND)
        start_date = _parse_date(request.query_params.get('from'), 'from')
        end_date = _parse_date(request.query_params.get('to'), 'to')
        open_slots = slots.open_slots(doctor_id, start_date, end_date)
        return Response(TimeSlotSerializer(open_slots, many=True).data)


@extend_schema(tags=['Time Slots'])
class MySlotsView(APIView):
    """
    GET  – doctor lists own slots (?status=, ?from=, ?to=)
    POST – doctor adds a single slot
    """
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    @extend_schema(responses={200: TimeSlotSerializer(many=True)})
    def get(self, request):
        qs = TimeSlot.objects.filter(doctor_id=identity_for(request).doctor_id)
        slot_status = request.query_params.get('status')
        if slot_status:
            qs = qs.filter(status=slot_status)
        start_date = _parse_date(request.query_params.get('from'), 'from')
        end_date = _parse_date(request.query_params.get('to'), 'to')
        if start_date:
            qs = qs.filter(start_time__date__gte=start_date)
        if end_date:
            qs = qs.filter(start_time__date__lte=end_date)
        return Response(TimeSlotSerializer(qs, many=True).data)

    @extend_schema(request=TimeSlotCreateSerializer, responses={201: TimeSlotSerializer})
    def post(self, request):
        serializer = TimeSlotCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        slot = slots.create_slot(
            identity_for(request).doctor_id, data['start_time'], data['end_time'],
            fee=data.get('consultation_fee'),
        )
        return Response(TimeSlotSerializer(slot).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['Time Slots'], request=SlotGenerationSerializer, responses={201: GenerationResultSerializer})
class GenerateSlotsView(APIView):
    """
    Doctor bulk-creates slots for a date range.

    POST /api/doctors/me/slots/generate/
    {
        "start_date": "2025-06-10",
        "end_date": "2025-06-12",
        "daily_windows": [{"start_time": "09:00", "end_time": "12:00"}],
        "slot_duration_minutes": 30,
        "consultation_fee": "100.00"
    }
    """
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    def post(self, request):
        serializer = SlotGenerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        doctor_id = identity_for(request).doctor_id

        if data['use_schedule']:
            result = slots.generate_slots_from_schedule(
                doctor_id, data['start_date'], data['end_date'], fee=data.get('consultation_fee'))
        else:
            result = slots.generate_slots(
                doctor_id,
                data['start_date'],
                data['end_date'],
                [(w['start_time'], w['end_time']) for w in data['daily_windows']],
                data['slot_duration_minutes'],
                fee=data.get('consultation_fee'),
            )
        return Response(
            {
                'message': f'{len(result.created)} time slots created, {len(result.skipped)} skipped.',
                'created': result.created,
                'skipped': result.skipped,
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=['Time Slots'])
class MySlotDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    @extend_schema(request=TimeSlotUpdateSerializer, responses={200: TimeSlotSerializer})
    def put(self, request, slot_id):
        serializer = TimeSlotUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        slot = slots.update_slot(
            identity_for(request).doctor_id, slot_id,
            start=data.get('start_time'),
            end=data.get('end_time'),
            status=data.get('status'),
            fee=data.get('consultation_fee'),
        )
        return Response(TimeSlotSerializer(slot).data)

    def delete(self, request, slot_id):
        outcome = slots.delete_slot(identity_for(request).doctor_id, slot_id)
        if outcome == 'cancelled':
            return Response({'message': 'Time slot has appointment history and was cancelled instead.'})
        return Response(status=status.HTTP_204_NO_CONTENT)


# ─────────────────────────────────────────────
# Blocked dates
# ─────────────────────────────────────────────

@extend_schema(tags=['Doctor Availability'], responses={200: BlockedDateSerializer})
class BlockedDatesView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    def get(self, request):
        qs = BlockedDate.objects.filter(doctor_id=identity_for(request).doctor_id)
        if request.query_params.get('upcoming') == 'true':
            qs = qs.filter(date__gte=timezone.localdate())
        return Response(BlockedDateSerializer(qs, many=True).data)

    @extend_schema(request=BlockedDateSerializer, responses={201: BlockedDateSerializer})
    def post(self, request):
        serializer = BlockedDateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        blocked = blocked_dates.block(
            identity_for(request).doctor_id,
            data['date'],
            reason=data.get('reason'),
            start_time=data.get('start_time'),
            end_time=data.get('end_time'),
        )
        return Response(BlockedDateSerializer(blocked).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['Doctor Availability'])
class BlockedDateDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDoctor]

    def delete(self, request, blocked_id):
        blocked_dates.unblock(blocked_id, doctor_id=identity_for(request).doctor_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
