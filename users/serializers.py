from rest_framework import serializers
from .models import User, Role


class RoleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = ['id', 'name']


class UserSerializer(serializers.ModelSerializer):
    roles = RoleSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'roles', 'contact', 'date_joined']
        read_only_fields = ['id', 'date_joined']


class UserUpdateSerializer(serializers.ModelSerializer):
    """Profile update for the current user. Role and contact are not editable here."""
    password = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['name', 'email', 'password']

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class LoginSerializer(serializers.Serializer):
    contact = serializers.IntegerField()
    password = serializers.CharField(write_only=True)


class PatientRegisterSerializer(serializers.ModelSerializer):
    """Self sign-up for patients. Doctors and staff are created from the admin."""
    password = serializers.CharField(write_only=True, min_length=6)

    class Meta:
        model = User
        fields = ['contact', 'name', 'email', 'password']
        extra_kwargs = {'contact': {'required': True, 'allow_null': False}}

    def create(self, validated_data):
        return User.objects.create_user(roles_id=Role.IS_PATIENT, **validated_data)
