from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.contrib.auth.password_validation import validate_password
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from blinkspace.serializers import BaseSerializer
import logging

logger = logging.getLogger('blinkspace')
User = get_user_model()

class UserSerializer(BaseSerializer):
    """
    Serializer for the User model
    """
    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'profile_image', 'date_joined']
        read_only_fields = ['id', 'email', 'date_joined']


class UserMiniSerializer(serializers.ModelSerializer):
    """
    Minimal user info used when listing friends and requests
    """
    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'profile_image']
        read_only_fields = fields


class UserDetailSerializer(BaseSerializer):
    """
    User with the relationship sets populated. Never includes the password.
    """
    friends = UserMiniSerializer(many=True, read_only=True)
    incoming_requests = UserMiniSerializer(many=True, read_only=True)
    outgoing_requests = UserMiniSerializer(many=True, read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'name', 'email', 'profile_image', 'date_joined',
            'friends', 'incoming_requests', 'outgoing_requests',
        ]
        read_only_fields = fields


class UserRegistrationSerializer(BaseSerializer):
    """
    Serializer for registering new users
    """
    password = serializers.CharField(write_only=True, required=True, style={'input_type': 'password'})

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'password', 'profile_image']
        read_only_fields = ['id']
        # Uniqueness is checked case-insensitively in validate_email
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        """
        Validate that the email is unique (case insensitive).
        """
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("User already exists.")
        return value.lower()

    def validate_password(self, value):
        """
        Validate password using Django's password validators.
        """
        try:
            validate_password(value)
        except ValidationError as e:
            logger.warning(f"Password validation failed: {e}")
            raise serializers.ValidationError(e.messages)
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')

        try:
            user = User.objects.create_user(password=password, **validated_data)
            logger.info(f"User created: {user.email}")
            return user
        except Exception as e:
            logger.error(f"Error creating user: {str(e)}")
            raise


class LoginSerializer(TokenObtainPairSerializer):
    """
    Email/password login returning the token pair plus the user
    """
    def validate(self, attrs):
        attrs[self.username_field] = attrs.get(self.username_field, '').lower()
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data
