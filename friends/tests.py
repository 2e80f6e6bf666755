from io import StringIO
from unittest.mock import patch
import threading
import time

from django.core.management import call_command
from django.db import OperationalError, connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from blinkspace.utils import GENERIC_STORAGE_ERROR
from users.models import User
from .exceptions import Conflict, InvalidOperation, InvalidState, NotFound, StorageUnavailable
from .relationships import (
    RelationshipManager, find_violations, make_request_id, parse_request_id,
    NONE, PENDING, FRIENDS, ACCEPTED, REJECTED,
    SELF_LINK, ONE_SIDED_FRIENDSHIP, FRIENDS_AND_PENDING, TWO_WAY_PENDING,
)
from .store import Friendship, FriendRequest, RelationshipStore


def create_user(name):
    return User.objects.create_user(
        email=f'{name}@example.com',
        name=name.title(),
        password='password123'
    )


class RequestIdTests(SimpleTestCase):
    def test_make_and_parse(self):
        self.assertEqual(make_request_id(3, 14), '3-14')
        self.assertEqual(parse_request_id('3-14'), (3, 14))

    def test_parse_rejects_malformed_ids(self):
        for value in ['', '3', '3-', '-14', '3-14-15', 'a-b', '0-4', '3 - 14', '507f1f77bcf86cd799439011']:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_request_id(value)


class FindViolationsTests(SimpleTestCase):
    def test_consistent_graph(self):
        friends = [(1, 2), (2, 1)]
        requests = [(1, 3), (4, 2)]
        self.assertEqual(find_violations(friends, requests), [])

    def test_reports_each_kind(self):
        friends = [(1, 2), (3, 3), (4, 5), (5, 4)]
        requests = [(4, 5), (6, 7), (7, 6)]
        kinds = [(v.kind, v.from_id, v.to_id) for v in find_violations(friends, requests)]

        self.assertIn((ONE_SIDED_FRIENDSHIP, 1, 2), kinds)
        self.assertIn((SELF_LINK, 3, 3), kinds)
        self.assertIn((FRIENDS_AND_PENDING, 4, 5), kinds)
        # Reported once per pair
        self.assertIn((TWO_WAY_PENDING, 6, 7), kinds)
        self.assertNotIn((TWO_WAY_PENDING, 7, 6), kinds)
        self.assertEqual(len(kinds), 4)


class RelationshipManagerTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = create_user('alice')
        cls.bob = create_user('bob')
        cls.carol = create_user('carol')

    def setUp(self):
        self.manager = RelationshipManager()

    def test_send_request_marks_pair_pending(self):
        request_id = self.manager.send_request(self.alice.id, self.bob.id)

        self.assertEqual(request_id, f'{self.alice.id}-{self.bob.id}')
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), PENDING)
        self.assertEqual(self.manager.query_status(self.bob.id, self.alice.id), PENDING)
        self.assertIn(self.bob, self.alice.outgoing_requests.all())
        self.assertIn(self.alice, self.bob.incoming_requests.all())
        self.assertEqual(self.manager.list_outgoing(self.alice.id), {self.bob.id})
        self.assertEqual(self.manager.list_incoming(self.bob.id), {self.alice.id})
        self.assertEqual(self.manager.list_incoming(self.alice.id), set())

    def test_pending_request_reports_direction(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        self.assertEqual(self.manager.pending_request(self.alice.id, self.bob.id), (self.alice.id, self.bob.id))
        self.assertEqual(self.manager.pending_request(self.bob.id, self.alice.id), (self.alice.id, self.bob.id))
        self.assertIsNone(self.manager.pending_request(self.alice.id, self.carol.id))

    def test_duplicate_request_conflicts(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        with self.assertRaises(Conflict):
            self.manager.send_request(self.alice.id, self.bob.id)
        self.assertEqual(FriendRequest.objects.count(), 1)

    def test_reverse_request_conflicts(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        with self.assertRaises(Conflict):
            self.manager.send_request(self.bob.id, self.alice.id)
        self.assertEqual(self.manager.list_outgoing(self.bob.id), set())

    def test_racing_insert_conflicts(self):
        """A request inserted after the state check still ends in Conflict"""
        self.manager.send_request(self.alice.id, self.bob.id)

        with patch.object(RelationshipStore, 'has_request', return_value=False):
            with self.assertRaises(Conflict):
                self.manager.send_request(self.alice.id, self.bob.id)
        self.assertEqual(FriendRequest.objects.count(), 1)

    def test_self_request_is_invalid(self):
        with self.assertRaises(InvalidOperation):
            self.manager.send_request(self.alice.id, self.alice.id)
        self.assertEqual(FriendRequest.objects.count(), 0)

    def test_request_to_unknown_user(self):
        with self.assertRaises(NotFound):
            self.manager.send_request(self.alice.id, 999999)
        self.assertEqual(self.manager.list_outgoing(self.alice.id), set())

    def test_request_between_friends_conflicts(self):
        self.manager.send_request(self.alice.id, self.bob.id)
        self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

        with self.assertRaises(Conflict):
            self.manager.send_request(self.bob.id, self.alice.id)

    def test_accept_makes_friends(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        result = self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

        self.assertEqual(result, FRIENDS)
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), FRIENDS)
        self.assertEqual(self.manager.list_outgoing(self.alice.id), set())
        self.assertEqual(self.manager.list_incoming(self.bob.id), set())
        self.assertEqual(self.manager.list_friends(self.alice.id), {self.bob.id})
        self.assertEqual(self.manager.list_friends(self.bob.id), {self.alice.id})

        with self.assertRaises(NotFound):
            self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

    def test_reject_leaves_friends_untouched(self):
        self.manager.send_request(self.alice.id, self.bob.id)
        self.manager.send_request(self.carol.id, self.bob.id)
        self.manager.resolve_request(self.carol.id, self.bob.id, ACCEPTED)

        result = self.manager.resolve_request(self.alice.id, self.bob.id, REJECTED)

        self.assertEqual(result, NONE)
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), NONE)
        self.assertEqual(self.manager.list_friends(self.bob.id), {self.carol.id})
        self.assertEqual(self.manager.list_friends(self.alice.id), set())

    def test_resolve_in_wrong_direction_is_not_found(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        with self.assertRaises(NotFound):
            self.manager.resolve_request(self.bob.id, self.alice.id, ACCEPTED)
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), PENDING)

    def test_unknown_decision(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        with self.assertRaises(InvalidOperation):
            self.manager.resolve_request(self.alice.id, self.bob.id, 'maybe')
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), PENDING)

    def test_cancel_request(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        self.manager.cancel_request(self.alice.id, self.bob.id)

        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), NONE)
        with self.assertRaises(NotFound):
            self.manager.cancel_request(self.alice.id, self.bob.id)

    def test_cancel_accepted_request_is_invalid_state(self):
        self.manager.send_request(self.alice.id, self.bob.id)
        self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

        with self.assertRaises(InvalidState):
            self.manager.cancel_request(self.alice.id, self.bob.id)
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), FRIENDS)

    def test_remove_friendship_is_symmetric(self):
        self.manager.send_request(self.alice.id, self.bob.id)
        self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

        self.assertTrue(self.manager.remove_friendship(self.bob.id, self.alice.id))

        self.assertEqual(self.manager.list_friends(self.alice.id), set())
        self.assertEqual(self.manager.list_friends(self.bob.id), set())
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), NONE)

    def test_remove_friendship_between_strangers_is_a_no_op(self):
        self.assertFalse(self.manager.remove_friendship(self.alice.id, self.carol.id))
        self.assertFalse(self.manager.remove_friendship(self.alice.id, self.carol.id))
        self.assertEqual(Friendship.objects.count(), 0)

    def test_query_status(self):
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), NONE)
        self.assertEqual(self.manager.query_status(self.alice.id, self.alice.id), NONE)
        with self.assertRaises(NotFound):
            self.manager.query_status(self.alice.id, 999999)

    def test_one_sided_friendship_is_not_friends(self):
        Friendship.objects.create(from_user=self.alice, to_user=self.bob)

        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), NONE)
        self.assertEqual(len(self.manager.verify_pair(self.alice.id, self.bob.id)), 1)

    def test_verify_pair_on_consistent_pair(self):
        self.manager.send_request(self.alice.id, self.bob.id)
        self.assertEqual(self.manager.verify_pair(self.alice.id, self.bob.id), [])

    def test_list_for_unknown_user(self):
        with self.assertRaises(NotFound):
            self.manager.list_friends(999999)

    def test_storage_failure(self):
        with patch.object(RelationshipStore, 'has_friend', side_effect=OperationalError('database is locked')):
            with self.assertRaises(StorageUnavailable):
                self.manager.query_status(self.alice.id, self.bob.id)

    def test_failed_accept_is_rolled_back(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        with patch.object(RelationshipStore, 'add_friendship', side_effect=OperationalError('disk I/O error')):
            with self.assertRaises(StorageUnavailable):
                self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

        # Request removal was undone along with the failed friendship write
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), PENDING)
        self.assertEqual(Friendship.objects.count(), 0)

    def test_alice_and_bob_become_friends(self):
        self.manager.send_request(self.alice.id, self.bob.id)
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), PENDING)

        self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED)

        self.assertEqual(self.manager.list_friends(self.alice.id), {self.bob.id})
        self.assertEqual(self.manager.list_friends(self.bob.id), {self.alice.id})


class ConcurrentRelationshipTests(TransactionTestCase):
    """
    Calls racing on the same pair from separate threads, each with its own
    database connection. The later call must see the earlier result.
    """

    def setUp(self):
        self.alice = create_user('alice')
        self.bob = create_user('bob')
        self.manager = RelationshipManager()

    def race(self, *calls):
        """
        Start every call at the same moment and return, per call, 'ok' or
        the name of the exception it raised. Each call keeps the pair locked
        a little longer so the transactions overlap.
        """
        barrier = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)
        lock_pair = RelationshipStore.lock_pair

        def slow_lock_pair(store, user_id, other_id):
            locked = lock_pair(store, user_id, other_id)
            time.sleep(0.2)
            return locked

        def run(index, call):
            try:
                barrier.wait()
                call()
                outcomes[index] = 'ok'
            except Exception as e:
                outcomes[index] = e.__class__.__name__
            finally:
                connection.close()

        with patch.object(RelationshipStore, 'lock_pair', slow_lock_pair):
            threads = [
                threading.Thread(target=run, args=(index, call))
                for index, call in enumerate(calls)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        return outcomes

    def test_concurrent_duplicate_requests(self):
        outcomes = self.race(
            lambda: self.manager.send_request(self.alice.id, self.bob.id),
            lambda: self.manager.send_request(self.alice.id, self.bob.id),
        )

        self.assertEqual(sorted(outcomes), ['Conflict', 'ok'])
        self.assertEqual(FriendRequest.objects.count(), 1)

    def test_concurrent_requests_in_both_directions(self):
        outcomes = self.race(
            lambda: self.manager.send_request(self.alice.id, self.bob.id),
            lambda: self.manager.send_request(self.bob.id, self.alice.id),
        )

        self.assertEqual(sorted(outcomes), ['Conflict', 'ok'])
        self.assertEqual(FriendRequest.objects.count(), 1)
        self.assertEqual(self.manager.query_status(self.alice.id, self.bob.id), PENDING)
        self.assertEqual(self.manager.verify_pair(self.alice.id, self.bob.id), [])

    def test_concurrent_accepts(self):
        self.manager.send_request(self.alice.id, self.bob.id)

        outcomes = self.race(
            lambda: self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED),
            lambda: self.manager.resolve_request(self.alice.id, self.bob.id, ACCEPTED),
        )

        self.assertEqual(sorted(outcomes), ['NotFound', 'ok'])
        self.assertEqual(FriendRequest.objects.count(), 0)
        self.assertEqual(self.manager.list_friends(self.alice.id), {self.bob.id})
        self.assertEqual(self.manager.list_friends(self.bob.id), {self.alice.id})
        self.assertEqual(Friendship.objects.count(), 2)


class CheckRelationshipsCommandTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = create_user('alice')
        cls.bob = create_user('bob')
        cls.carol = create_user('carol')
        cls.dave = create_user('dave')

    def run_command(self, *args):
        out = StringIO()
        call_command('check_relationships', *args, stdout=out)
        return out.getvalue()

    def break_graph(self):
        Friendship.objects.create(from_user=self.alice, to_user=self.bob)
        FriendRequest.objects.create(from_user=self.alice, to_user=self.bob)
        Friendship.objects.create(from_user=self.carol, to_user=self.carol)
        FriendRequest.objects.create(from_user=self.carol, to_user=self.dave)
        FriendRequest.objects.create(from_user=self.dave, to_user=self.carol)

    def test_consistent_graph(self):
        RelationshipManager().send_request(self.alice.id, self.bob.id)

        output = self.run_command()

        self.assertIn('Found 0 relationship violations', output)
        self.assertIn('consistent', output)

    def test_reports_without_changing_anything(self):
        self.break_graph()

        output = self.run_command()

        self.assertIn('Found 4 relationship violations', output)
        self.assertIn('--fix', output)
        self.assertEqual(Friendship.objects.count(), 2)
        self.assertEqual(FriendRequest.objects.count(), 3)

    def test_fix_repairs_graph(self):
        self.break_graph()

        output = self.run_command('--fix')

        self.assertIn('Repaired 4 relationship violations', output)
        manager = RelationshipManager()
        self.assertEqual(manager.query_status(self.alice.id, self.bob.id), FRIENDS)
        self.assertEqual(manager.list_outgoing(self.alice.id), set())
        self.assertEqual(manager.list_friends(self.carol.id), set())
        # Carol asked first, so her request survives
        self.assertEqual(manager.pending_request(self.carol.id, self.dave.id), (self.carol.id, self.dave.id))
        self.assertIn('Found 0 relationship violations', self.run_command())


class FriendRequestAPITests(APITestCase):
    def setUp(self):
        """Set up test data"""
        self.alice = create_user('alice')
        self.bob = create_user('bob')
        self.carol = create_user('carol')

        self.client = APIClient()
        self.client.force_authenticate(user=self.alice)

        self.create_url = reverse('friends:friend-request-create')

    def check_url(self, a, b):
        return reverse('friends:friend-request-check', args=[a.id, b.id])

    def detail_url(self, request_id):
        return reverse('friends:friend-request-detail', args=[request_id])

    def send(self, from_user, to_user):
        return self.client.post(
            self.create_url, {'fromUser': from_user.id, 'toUser': to_user.id}, format='json'
        )

    def test_send_friend_request(self):
        response = self.send(self.alice, self.bob)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['requestId'], f'{self.alice.id}-{self.bob.id}')
        self.assertEqual(response.data['message'], 'Friend request sent successfully')

    def test_check_status(self):
        response = self.client.get(self.check_url(self.alice, self.bob))
        self.assertEqual(response.data, {'status': 'none'})

        self.send(self.alice, self.bob)

        response = self.client.get(self.check_url(self.alice, self.bob))
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['requestId'], f'{self.alice.id}-{self.bob.id}')
        self.assertEqual(response.data['direction'], 'outgoing')

        response = self.client.get(self.check_url(self.bob, self.alice))
        self.assertEqual(response.data['direction'], 'incoming')

    def test_check_unknown_user(self):
        response = self.client.get(reverse('friends:friend-request-check', args=[self.alice.id, 999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'NotFound')

    def test_duplicate_request_conflicts(self):
        self.send(self.alice, self.bob)

        response = self.send(self.bob, self.alice)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Conflict')

    def test_cannot_send_request_to_self(self):
        response = self.send(self.alice, self.alice)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'InvalidOperation')
        self.assertEqual(response.data['detail'], 'Cannot send a friend request to yourself.')

    def test_send_defaults_to_signed_in_user(self):
        response = self.client.post(self.create_url, {'toUser': self.bob.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['requestId'], f'{self.alice.id}-{self.bob.id}')
        self.assertEqual(list(self.bob.incoming_requests.all()), [self.alice])

    def test_send_with_invalid_body(self):
        response = self.client.post(self.create_url, {'fromUser': 'abc'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'ValidationError')
        self.assertIn('fromUser', response.data['detail'])
        self.assertIn('toUser', response.data['detail'])
        self.assertEqual(FriendRequest.objects.count(), 0)

    def test_accept_friend_request(self):
        request_id = self.send(self.alice, self.bob).data['requestId']
        self.client.force_authenticate(user=self.bob)

        response = self.client.put(self.detail_url(request_id), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'accepted')
        self.assertEqual([f['id'] for f in response.data['user']['friends']], [self.alice.id])
        self.assertEqual(response.data['user']['incoming_requests'], [])
        self.assertNotIn('password', response.data['user'])

        response = self.client.get(self.check_url(self.alice, self.bob))
        self.assertEqual(response.data, {'status': 'friends'})

        response = self.client.put(self.detail_url(request_id), {'status': 'accepted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reject_friend_request(self):
        request_id = self.send(self.alice, self.bob).data['requestId']

        response = self.client.put(self.detail_url(request_id), {'status': 'rejected'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['friends'], [])
        self.assertEqual(self.client.get(self.check_url(self.alice, self.bob)).data, {'status': 'none'})

    def test_resolve_with_invalid_status(self):
        request_id = self.send(self.alice, self.bob).data['requestId']

        response = self.client.put(self.detail_url(request_id), {'status': 'pending'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['detail'])

    def test_resolve_with_mismatched_users(self):
        request_id = self.send(self.alice, self.bob).data['requestId']

        response = self.client.put(
            self.detail_url(request_id),
            {'status': 'accepted', 'fromUser': self.carol.id, 'toUser': self.bob.id},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get(self.check_url(self.alice, self.bob)).data['status'], 'pending')

    def test_malformed_request_id(self):
        response = self.client.put(self.detail_url('not-an-id'), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('request_id', response.data['detail'])

    def test_cancel_friend_request(self):
        request_id = self.send(self.alice, self.bob).data['requestId']

        response = self.client.delete(self.detail_url(request_id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Friend request cancelled')

        response = self.client.delete(self.detail_url(request_id))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_received_and_sent(self):
        self.send(self.alice, self.bob)
        self.send(self.carol, self.bob)

        response = self.client.get(reverse('friends:friend-requests-received', args=[self.bob.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['id'] for u in response.data], [self.alice.id, self.carol.id])
        self.assertEqual(response.data[0]['email'], 'alice@example.com')

        response = self.client.get(reverse('friends:friend-requests-sent', args=[self.alice.id]))
        self.assertEqual([u['id'] for u in response.data], [self.bob.id])

        response = self.client.get(reverse('friends:friend-requests-sent', args=[self.bob.id]))
        self.assertEqual(response.data, [])

    def test_list_and_remove_friends(self):
        request_id = self.send(self.alice, self.bob).data['requestId']
        self.client.put(self.detail_url(request_id), {'status': 'accepted'}, format='json')

        response = self.client.get(reverse('friends:friends-list', args=[self.bob.id]))
        self.assertEqual([u['id'] for u in response.data], [self.alice.id])

        url = reverse('friends:friends-detail', args=[self.alice.id, self.bob.id])
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['removed'])

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['removed'])

        response = self.client.get(reverse('friends:friends-list', args=[self.bob.id]))
        self.assertEqual(response.data, [])

    def test_list_for_unknown_user(self):
        response = self.client.get(reverse('friends:friends-list', args=[999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_storage_failure_hides_driver_message(self):
        with patch.object(RelationshipStore, 'has_friend', side_effect=OperationalError('disk I/O error')):
            response = self.client.get(self.check_url(self.alice, self.bob))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error'], 'StorageUnavailable')
        self.assertEqual(response.data['detail'], GENERIC_STORAGE_ERROR)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)

        response = self.send(self.alice, self.bob)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(FriendRequest.objects.count(), 0)
