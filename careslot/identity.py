"""
Caller identity handed to the scheduling engine.

Authentication (JWT) and role resolution happen here, at the edge. The engine
functions only ever receive the explicit ids carried by `CallerIdentity`.
"""
import uuid
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CallerIdentity:
    user_id: uuid.UUID
    role: int
    doctor_id: Optional[int] = None
    patient_id: Optional[uuid.UUID] = None

    @property
    def is_doctor(self) -> bool:
        return self.doctor_id is not None

    @property
    def is_patient(self) -> bool:
        return self.patient_id is not None

    @classmethod
    def from_user(cls, user) -> 'CallerIdentity':
        from users.models import Role
        from doctors.models import DoctorProfile

        doctor_id = None
        patient_id = None
        if user.roles_id == Role.IS_DOCTOR:
            doctor_id = DoctorProfile.objects.filter(user=user).values_list('id', flat=True).first()
        elif user.roles_id == Role.IS_PATIENT:
            patient_id = user.id
        return cls(user_id=user.id, role=user.roles_id, doctor_id=doctor_id, patient_id=patient_id)


def identity_for(request) -> CallerIdentity:
    """Resolve (once per request) the identity of the authenticated caller."""
    identity = getattr(request, '_caller_identity', None)
    if identity is None:
        identity = CallerIdentity.from_user(request.user)
        request._caller_identity = identity
    return identity
