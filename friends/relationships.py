"""
Friendship relationship manager.

A pair of users is always in exactly one state:

    none -> pending (A -> B) -> friends
                             -> none   (rejected or cancelled)

Every operation runs in a single transaction. Mutations lock both user rows
first (see RelationshipStore.lock_pair), so concurrent calls on the same pair
are applied one after the other and the later call sees the earlier result.
"""

from collections import namedtuple
import logging
import re

from .exceptions import Conflict, InvalidOperation, InvalidState, NotFound
from .store import RelationshipStore

logger = logging.getLogger('blinkspace')

# Pair status
NONE = 'none'
PENDING = 'pending'
FRIENDS = 'friends'

STATUSES = (
    (NONE, 'None'),
    (PENDING, 'Pending'),
    (FRIENDS, 'Friends'),
)

# Answers to a pending request
ACCEPTED = 'accepted'
REJECTED = 'rejected'

DECISIONS = (
    (ACCEPTED, 'Accepted'),
    (REJECTED, 'Rejected'),
)

REQUEST_ID_RE = re.compile(r'^(?P<from_id>[1-9]\d*)-(?P<to_id>[1-9]\d*)$')


def make_request_id(from_id, to_id):
    """Synthetic identifier of the pending request from_id -> to_id."""
    return f"{from_id}-{to_id}"


def parse_request_id(request_id):
    """
    Split a request id produced by make_request_id back into
    (from_id, to_id). Raises ValueError for anything else.
    """
    match = REQUEST_ID_RE.match(str(request_id))
    if match is None:
        raise ValueError(f"Malformed friend request id: {request_id!r}")
    return int(match.group('from_id')), int(match.group('to_id'))


# Invariant violations
SELF_LINK = 'self_link'
ONE_SIDED_FRIENDSHIP = 'one_sided_friendship'
FRIENDS_AND_PENDING = 'friends_and_pending'
TWO_WAY_PENDING = 'two_way_pending'

Violation = namedtuple('Violation', ['kind', 'from_id', 'to_id'])

VIOLATION_MESSAGES = {
    SELF_LINK: "user {from_id} is linked to itself",
    ONE_SIDED_FRIENDSHIP: "user {from_id} lists {to_id} as a friend but not the other way round",
    FRIENDS_AND_PENDING: "request {from_id} -> {to_id} is pending although the users are friends",
    TWO_WAY_PENDING: "requests are pending in both directions between {from_id} and {to_id}",
}


def describe(violation):
    return VIOLATION_MESSAGES[violation.kind].format(
        from_id=violation.from_id, to_id=violation.to_id
    )


def find_violations(friend_links, request_links):
    """
    Check directed friendship and request links against the pair
    invariants and return the violations found, in a stable order.

    Both arguments are iterables of (from_id, to_id) tuples.
    """
    friends = set(friend_links)
    requests = set(request_links)
    violations = []

    for a, b in sorted(friends):
        if a == b:
            violations.append(Violation(SELF_LINK, a, b))
        elif (b, a) not in friends:
            violations.append(Violation(ONE_SIDED_FRIENDSHIP, a, b))

    for a, b in sorted(requests):
        if a == b:
            violations.append(Violation(SELF_LINK, a, b))
            continue
        if (a, b) in friends or (b, a) in friends:
            violations.append(Violation(FRIENDS_AND_PENDING, a, b))
        if (b, a) in requests and a < b:
            violations.append(Violation(TWO_WAY_PENDING, a, b))

    return violations


class RelationshipManager:
    """
    Applies the friend request state machine to the relationship sets of
    two users. All ids are user primary keys.
    """

    def __init__(self, store=None):
        self.store = store or RelationshipStore()

    def _status(self, a_id, b_id):
        if self.store.has_friend(a_id, b_id) and self.store.has_friend(b_id, a_id):
            return FRIENDS
        if self.store.has_request(a_id, b_id) or self.store.has_request(b_id, a_id):
            return PENDING
        return NONE

    def _reject(self, exc_class, message, a_id, b_id):
        logger.warning(f"Relationship change {a_id} -> {b_id} rejected: {message}")
        return exc_class(message)

    # Reads

    def query_status(self, a_id, b_id):
        """Return 'friends', 'pending' or 'none' for the pair."""
        with self.store.atomic():
            self.store.get_pair(a_id, b_id)
            if a_id == b_id:
                return NONE
            return self._status(a_id, b_id)

    def pending_request(self, a_id, b_id):
        """
        Return (from_id, to_id) of the request pending between the pair, in
        whichever direction it was sent, or None.
        """
        with self.store.atomic():
            self.store.get_pair(a_id, b_id)
            if a_id == b_id:
                return None
            if self.store.has_request(a_id, b_id):
                return a_id, b_id
            if self.store.has_request(b_id, a_id):
                return b_id, a_id
            return None

    def list_friends(self, user_id):
        with self.store.atomic():
            self.store.get_user(user_id)
            return self.store.friend_ids(user_id)

    def list_incoming(self, user_id):
        with self.store.atomic():
            self.store.get_user(user_id)
            return self.store.incoming_ids(user_id)

    def list_outgoing(self, user_id):
        with self.store.atomic():
            self.store.get_user(user_id)
            return self.store.outgoing_ids(user_id)

    def verify_pair(self, a_id, b_id):
        """Return the invariant violations for one pair as readable strings."""
        with self.store.atomic():
            self.store.get_pair(a_id, b_id)
            friend_links = [
                (x, y) for x, y in ((a_id, b_id), (b_id, a_id))
                if self.store.has_friend(x, y)
            ]
            request_links = [
                (x, y) for x, y in ((a_id, b_id), (b_id, a_id))
                if self.store.has_request(x, y)
            ]
        return [describe(v) for v in find_violations(friend_links, request_links)]

    # Transitions

    def send_request(self, from_id, to_id):
        """
        Create the pending request from_id -> to_id and return its id.

        The pair must currently be in state 'none'. A request in the
        opposite direction counts as pending: the first sender keeps it
        until it is resolved.
        """
        if from_id == to_id:
            raise self._reject(InvalidOperation, "Cannot send a friend request to yourself.", from_id, to_id)

        with self.store.atomic():
            self.store.lock_pair(from_id, to_id)
            current = self._status(from_id, to_id)
            if current == FRIENDS:
                raise self._reject(Conflict, "Already friends.", from_id, to_id)
            if current == PENDING:
                raise self._reject(Conflict, "A friend request is already pending between these users.", from_id, to_id)
            self.store.add_request(from_id, to_id)

        logger.info(f"Friend request sent: {from_id} -> {to_id}")
        return make_request_id(from_id, to_id)

    def cancel_request(self, from_id, to_id):
        """Withdraw the pending request from_id -> to_id."""
        with self.store.atomic():
            self.store.lock_pair(from_id, to_id)
            if not self.store.remove_request(from_id, to_id):
                if from_id != to_id and self._status(from_id, to_id) == FRIENDS:
                    raise self._reject(InvalidState, "Only pending requests can be cancelled.", from_id, to_id)
                raise self._reject(NotFound, "Friend request not found.", from_id, to_id)

        logger.info(f"Friend request cancelled: {from_id} -> {to_id}")

    def resolve_request(self, from_id, to_id, decision):
        """
        Accept or reject the pending request from_id -> to_id and return the
        resulting pair status. The request is removed either way; accepting
        also records the friendship in both directions.
        """
        if decision not in (ACCEPTED, REJECTED):
            raise self._reject(InvalidOperation, f"Unknown decision {decision!r}.", from_id, to_id)

        with self.store.atomic():
            self.store.lock_pair(from_id, to_id)
            if not self.store.remove_request(from_id, to_id):
                raise self._reject(NotFound, "Friend request not found.", from_id, to_id)
            if decision == ACCEPTED:
                self.store.add_friendship(from_id, to_id)

        logger.info(f"Friend request {decision}: {from_id} -> {to_id}")
        return FRIENDS if decision == ACCEPTED else NONE

    def remove_friendship(self, user_id, friend_id):
        """
        Remove the friendship in both directions. Returns False when the
        users were not friends, which is not an error.
        """
        with self.store.atomic():
            self.store.lock_pair(user_id, friend_id)
            removed = self.store.remove_friendship(user_id, friend_id)

        if removed:
            logger.info(f"Friendship removed: {user_id} <-> {friend_id}")
        return bool(removed)
