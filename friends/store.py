"""
Persistence adapter for the relationship sets stored on users.User.

Two join tables back the relationship graph:

* ``Friendship``  - ``User.friends`` rows, one per direction.
* ``FriendRequest`` - ``User.outgoing_requests`` rows. A row (A, B) is both
  "B in A.outgoing_requests" and "A in B.incoming_requests".

Every method expects to run inside ``RelationshipStore.atomic()``; the
locking reads raise TransactionManagementError otherwise.
"""

from contextlib import contextmanager
import logging

from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction
from django.db.models import F, Q

from users.models import User
from .exceptions import Conflict, NotFound, StorageUnavailable

logger = logging.getLogger('blinkspace')

Friendship = User.friends.through
FriendRequest = User.outgoing_requests.through


class RelationshipStore:
    """
    ORM-backed access to the friendship and request join tables.
    """

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    @contextmanager
    def atomic(self):
        """
        Run the enclosed block as one transaction. Unique-constraint
        violations become Conflict, any other database failure becomes
        StorageUnavailable; both leave the transaction rolled back.
        """
        try:
            with transaction.atomic(using=self.using):
                yield
        except IntegrityError as e:
            logger.warning(f"Relationship write rejected by a constraint: {e}")
            raise Conflict("The relationship was changed by another request.") from e
        except DatabaseError as e:
            logger.error(f"Relationship storage failure: {e.__class__.__name__}: {e}")
            raise StorageUnavailable() from e

    def _users(self):
        return User.objects.using(self.using)

    def _check_found(self, found, *user_ids):
        for user_id in user_ids:
            if user_id not in found:
                raise NotFound(f"User {user_id} not found.")

    def get_user(self, user_id):
        user = self._users().filter(pk=user_id).first()
        if user is None:
            raise NotFound(f"User {user_id} not found.")
        return user

    def get_pair(self, user_id, other_id):
        """Fetch both users without locking."""
        found = {u.pk: u for u in self._users().filter(pk__in={user_id, other_id})}
        self._check_found(found, user_id, other_id)
        return found[user_id], found[other_id]

    def lock_pair(self, user_id, other_id):
        """
        Lock both user rows for the rest of the transaction. Rows are always
        locked in ascending primary key order, so two transactions touching
        the same unordered pair cannot deadlock. SQLite ignores FOR UPDATE;
        there the IMMEDIATE transaction mode already holds the database write
        lock from BEGIN.
        """
        queryset = (
            self._users()
            .select_for_update()
            .filter(pk__in={user_id, other_id})
            .order_by('pk')
        )
        found = {u.pk: u for u in queryset}
        self._check_found(found, user_id, other_id)
        return found[user_id], found[other_id]

    # Queries

    def has_friend(self, user_id, friend_id):
        return Friendship.objects.using(self.using).filter(
            from_user_id=user_id, to_user_id=friend_id
        ).exists()

    def has_request(self, from_id, to_id):
        return FriendRequest.objects.using(self.using).filter(
            from_user_id=from_id, to_user_id=to_id
        ).exists()

    def friend_ids(self, user_id):
        return set(
            Friendship.objects.using(self.using)
            .filter(from_user_id=user_id)
            .values_list('to_user_id', flat=True)
        )

    def incoming_ids(self, user_id):
        return set(
            FriendRequest.objects.using(self.using)
            .filter(to_user_id=user_id)
            .values_list('from_user_id', flat=True)
        )

    def outgoing_ids(self, user_id):
        return set(
            FriendRequest.objects.using(self.using)
            .filter(from_user_id=user_id)
            .values_list('to_user_id', flat=True)
        )

    def friendship_links(self):
        """All (user, friend) rows, oldest first."""
        return list(
            Friendship.objects.using(self.using)
            .order_by('pk')
            .values_list('from_user_id', 'to_user_id')
        )

    def request_links(self):
        """All (from, to) pending requests, oldest first."""
        return list(
            FriendRequest.objects.using(self.using)
            .order_by('pk')
            .values_list('from_user_id', 'to_user_id')
        )

    # Mutations

    def add_request(self, from_id, to_id):
        # A plain insert, not outgoing_requests.add(): a duplicate must hit
        # the unique constraint instead of being skipped.
        FriendRequest.objects.using(self.using).create(from_user_id=from_id, to_user_id=to_id)

    def remove_request(self, from_id, to_id):
        deleted, _ = FriendRequest.objects.using(self.using).filter(
            from_user_id=from_id, to_user_id=to_id
        ).delete()
        return deleted

    def add_friendship(self, user_id, friend_id):
        """Add both directions; existing rows are left alone."""
        existing = set(
            Friendship.objects.using(self.using)
            .filter(
                Q(from_user_id=user_id, to_user_id=friend_id)
                | Q(from_user_id=friend_id, to_user_id=user_id)
            )
            .values_list('from_user_id', 'to_user_id')
        )
        missing = [
            Friendship(from_user_id=a, to_user_id=b)
            for a, b in ((user_id, friend_id), (friend_id, user_id))
            if (a, b) not in existing
        ]
        if missing:
            Friendship.objects.using(self.using).bulk_create(missing)
        return len(missing)

    def remove_friendship(self, user_id, friend_id):
        """Remove both directions and return the number of rows deleted."""
        deleted, _ = Friendship.objects.using(self.using).filter(
            Q(from_user_id=user_id, to_user_id=friend_id)
            | Q(from_user_id=friend_id, to_user_id=user_id)
        ).delete()
        return deleted

    def remove_self_links(self):
        """Delete friendship and request rows pointing from a user to itself."""
        friends, _ = Friendship.objects.using(self.using).filter(from_user_id=F('to_user_id')).delete()
        requests, _ = FriendRequest.objects.using(self.using).filter(from_user_id=F('to_user_id')).delete()
        return friends + requests
