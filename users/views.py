import logging

from django.contrib.auth import authenticate
from rest_framework import status, permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError
from drf_spectacular.utils import extend_schema

from .serializers import UserSerializer, UserUpdateSerializer, LoginSerializer, PatientRegisterSerializer

logger = logging.getLogger(__name__)


def _tokens_for(user):
    refresh = RefreshToken.for_user(user)
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
        'user': UserSerializer(user).data,
    }


# ═══════════════════════════════════════════════════════════════
# PATIENT REGISTRATION
# ═══════════════════════════════════════════════════════════════

@extend_schema(tags=['Auth'], request=PatientRegisterSerializer, responses={201: UserSerializer})
class PatientRegisterView(APIView):
    """
    POST /api/users/register/
    {
        "contact": 9876543210,
        "name": "Asha Rao",
        "email": "asha@example.com",
        "password": "secret123"
    }
    Creates a patient account and logs it in.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = PatientRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info('Patient %s registered', user.id)
        return Response(_tokens_for(user), status=status.HTTP_201_CREATED)


# ═══════════════════════════════════════════════════════════════
# LOGIN: contact + password → JWT
# ═══════════════════════════════════════════════════════════════

@extend_schema(tags=['Auth'], request=LoginSerializer, responses={200: UserSerializer})
class LoginView(APIView):
    """
    Standard login with contact number + password.

    POST /api/users/login/
    {
        "contact": 9876543210,
        "password": "secret123"
    }
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'message': 'Contact and password are required.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        user = authenticate(request, **serializer.validated_data)
        if not user:
            logger.info('Failed login for contact %s', serializer.validated_data['contact'])
            return Response(
                {'message': 'Invalid contact number or password.'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        return Response(_tokens_for(user), status=status.HTTP_200_OK)


@extend_schema(tags=['Auth'])
class RefreshTokenView(APIView):
    """Refresh access token using refresh token."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if not refresh_token:
            return Response({'message': 'Refresh token is required.'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(refresh_token)
            return Response({'access': str(token.access_token)}, status=status.HTTP_200_OK)
        except TokenError as e:
            return Response({'message': str(e)}, status=status.HTTP_401_UNAUTHORIZED)


# ═══════════════════════════════════════════════════════════════
# Current user
# ═══════════════════════════════════════════════════════════════

@extend_schema(tags=['User'], responses={200: UserSerializer})
class CurrentUser(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def put(self, request):
        serializer = UserUpdateSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(UserSerializer(request.user).data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
