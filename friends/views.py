from django.contrib.auth import get_user_model
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from users.serializers import UserMiniSerializer, UserDetailSerializer
from .relationships import RelationshipManager, PENDING, ACCEPTED, make_request_id
from .serializers import (
    UserPairSerializer, UserPathSerializer, FriendRequestCreateSerializer,
    FriendRequestPathSerializer, FriendRequestResolveSerializer,
)
import logging

logger = logging.getLogger('blinkspace')
User = get_user_model()


class RelationshipAPIView(generics.GenericAPIView):
    """
    Base view for the friend request endpoints. Validates path parameters
    and bodies with input serializers before calling the relationship
    manager; manager errors are rendered by the project exception handler.
    """
    permission_classes = [permissions.IsAuthenticated]
    manager = RelationshipManager()

    def validate_input(self, serializer_class, data, **extra_context):
        context = self.get_serializer_context()
        context.update(extra_context)
        serializer = serializer_class(data=data, context=context)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def users_data(self, user_ids):
        users = User.objects.filter(pk__in=user_ids).order_by('name', 'id')
        return UserMiniSerializer(users, many=True).data


class FriendStatusView(RelationshipAPIView):
    """
    Relationship status between two users: none, pending or friends
    """
    serializer_class = UserPairSerializer

    def get(self, request, user_id, other_id):
        data = self.validate_input(UserPairSerializer, {'user_id': user_id, 'other_id': other_id})
        user_id, other_id = data['user_id'], data['other_id']

        current = self.manager.query_status(user_id, other_id)
        body = {'status': current}

        if current == PENDING:
            pair = self.manager.pending_request(user_id, other_id)
            # The request may have been resolved between the two reads
            if pair is not None:
                body['requestId'] = make_request_id(*pair)
                body['direction'] = 'outgoing' if pair[0] == user_id else 'incoming'

        return Response(body)


class FriendRequestCreateView(RelationshipAPIView):
    """
    Send a friend request. Without fromUser the request is sent by the
    signed-in user; an explicit fromUser is not checked against it, so any
    authenticated client may act for another user.
    """
    serializer_class = FriendRequestCreateSerializer

    def post(self, request):
        data = self.validate_input(FriendRequestCreateSerializer, request.data)
        from_id = data.get('from_id', request.user.id)
        request_id = self.manager.send_request(from_id, data['to_id'])
        return Response(
            {'message': 'Friend request sent successfully', 'requestId': request_id},
            status=status.HTTP_201_CREATED
        )


class FriendRequestDetailView(RelationshipAPIView):
    """
    Accept/reject (PUT) or cancel (DELETE) a pending friend request.
    The caller is not required to be the sender or the receiver.
    """
    serializer_class = FriendRequestResolveSerializer

    def get_request_pair(self, request_id):
        data = self.validate_input(FriendRequestPathSerializer, {'request_id': request_id})
        return data['request_id']

    def put(self, request, request_id):
        from_id, to_id = pair = self.get_request_pair(request_id)
        data = self.validate_input(FriendRequestResolveSerializer, request.data, request_pair=pair)
        decision = data['status']

        self.manager.resolve_request(from_id, to_id, decision)

        receiver = User.objects.prefetch_related('friends').get(pk=to_id)
        return Response({
            'message': 'Friend request accepted' if decision == ACCEPTED else 'Friend request rejected',
            'status': decision,
            'user': UserDetailSerializer(receiver).data,
        })

    def delete(self, request, request_id):
        from_id, to_id = self.get_request_pair(request_id)
        self.manager.cancel_request(from_id, to_id)
        return Response({'message': 'Friend request cancelled'})


class IncomingRequestListView(RelationshipAPIView):
    """
    Users who sent a pending request to user_id
    """
    serializer_class = UserMiniSerializer

    def get(self, request, user_id):
        data = self.validate_input(UserPathSerializer, {'user_id': user_id})
        return Response(self.users_data(self.manager.list_incoming(data['user_id'])))


class OutgoingRequestListView(RelationshipAPIView):
    """
    Users that user_id sent a pending request to
    """
    serializer_class = UserMiniSerializer

    def get(self, request, user_id):
        data = self.validate_input(UserPathSerializer, {'user_id': user_id})
        return Response(self.users_data(self.manager.list_outgoing(data['user_id'])))


class FriendListView(RelationshipAPIView):
    """
    Friends of user_id
    """
    serializer_class = UserMiniSerializer

    def get(self, request, user_id):
        data = self.validate_input(UserPathSerializer, {'user_id': user_id})
        return Response(self.users_data(self.manager.list_friends(data['user_id'])))


class FriendDetailView(RelationshipAPIView):
    """
    Remove a friendship. Removing users who are not friends succeeds.
    """
    serializer_class = UserPairSerializer

    def delete(self, request, user_id, friend_id):
        data = self.validate_input(UserPairSerializer, {'user_id': user_id, 'other_id': friend_id})
        removed = self.manager.remove_friendship(data['user_id'], data['other_id'])
        return Response({'message': 'Friend removed successfully', 'removed': removed})
