from rest_framework.permissions import BasePermission

from careslot.identity import identity_for


class IsDoctor(BasePermission):
    """Authenticated user with the doctor role and a doctor profile."""
    message = "Only doctors can perform this action."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and identity_for(request).is_doctor)


class IsPatient(BasePermission):
    message = "Only patients can perform this action."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and identity_for(request).is_patient)
