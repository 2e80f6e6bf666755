from rest_framework import serializers
from blinkspace.serializers import BaseInputSerializer
from .relationships import DECISIONS, parse_request_id


class UserIdField(serializers.IntegerField):
    """
    Primary key of a user as it appears in paths and bodies.
    Existence is checked by the relationship manager, not here.
    """
    def __init__(self, **kwargs):
        kwargs.setdefault('min_value', 1)
        super().__init__(**kwargs)


class RequestIdField(serializers.CharField):
    """
    Synthetic friend request id "<fromUser>-<toUser>", validated into a
    (from_id, to_id) tuple.
    """
    default_error_messages = {
        'malformed': 'Friend request id must look like "<fromUser>-<toUser>".',
    }

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return parse_request_id(value)
        except ValueError:
            self.fail('malformed')

    def to_representation(self, value):
        from_id, to_id = value
        return f"{from_id}-{to_id}"


class UserPairSerializer(BaseInputSerializer):
    """
    Two user ids taken from the URL, e.g. the status check endpoint.
    """
    user_id = UserIdField()
    other_id = UserIdField()


class UserPathSerializer(BaseInputSerializer):
    user_id = UserIdField()


class FriendRequestCreateSerializer(BaseInputSerializer):
    """
    Body of POST /friend-request. fromUser defaults to the signed-in user.
    """
    fromUser = UserIdField(source='from_id', required=False)
    toUser = UserIdField(source='to_id')


class FriendRequestPathSerializer(BaseInputSerializer):
    request_id = RequestIdField()


class FriendRequestResolveSerializer(BaseInputSerializer):
    """
    Body of PUT /friend-request/<id>. fromUser/toUser are optional; when
    given they must agree with the request id.
    """
    status = serializers.ChoiceField(choices=DECISIONS)
    fromUser = UserIdField(source='from_id', required=False)
    toUser = UserIdField(source='to_id', required=False)

    def validate(self, attrs):
        request_pair = self.context.get('request_pair')
        if request_pair is None:
            return attrs

        from_id, to_id = request_pair
        if attrs.get('from_id', from_id) != from_id or attrs.get('to_id', to_id) != to_id:
            raise serializers.ValidationError("fromUser and toUser do not match the friend request id.")
        return attrs
