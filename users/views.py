from rest_framework import status, generics
from rest_framework.response import Response
from rest_framework.decorators import api_view, permission_classes, action
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError
from django.contrib.auth import get_user_model
from django.db import transaction
from .serializers import (
    UserSerializer, UserDetailSerializer, UserRegistrationSerializer, LoginSerializer,
)
from blinkspace.views import BaseReadOnlyViewSet
from blinkspace.utils import create_error_response
import logging

User = get_user_model()
logger = logging.getLogger('blinkspace')

class UserViewSet(BaseReadOnlyViewSet):
    """
    API viewset for reading user profiles.
    """
    queryset = User.objects.all()
    serializer_class = UserSerializer
    pagination_class = None

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('friends', 'incoming_requests', 'outgoing_requests')
        return queryset

    def get_serializer_class(self):
        if self.action in ['retrieve', 'me']:
            return UserDetailSerializer
        return UserSerializer

    @action(detail=False, methods=['get'])
    def me(self, request):
        """
        Get the current user's profile
        """
        serializer = self.get_serializer(request.user)
        return Response(serializer.data)


class LoginView(TokenObtainPairView):
    """
    Email/password login returning JWT tokens and the user
    """
    serializer_class = LoginSerializer

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == 200:
            response.data['message'] = 'Login successful'
            logger.info(f"User logged in: {response.data['user']['email']}")
        return response


class RegistrationView(generics.CreateAPIView):
    """
    API view for user registration
    """
    queryset = User.objects.all()
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            user = serializer.save()

        # Generate JWT tokens
        refresh = RefreshToken.for_user(user)

        return Response({
            'message': 'User created successfully',
            'user': UserSerializer(user).data,
            'tokens': {
                'refresh': str(refresh),
                'access': str(refresh.access_token),
            }
        }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """
    API view to logout a user by invalidating their refresh token
    """
    refresh_token = request.data.get('refresh')
    if not refresh_token:
        return create_error_response("Refresh token is required", status.HTTP_400_BAD_REQUEST)

    try:
        token = RefreshToken(refresh_token)
        token.blacklist()
    except TokenError as e:
        logger.warning(f"Logout with an invalid refresh token: {str(e)}")
        return create_error_response(str(e), status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Logout successful'
    })
