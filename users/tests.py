from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from django.contrib.auth import get_user_model

from friends.relationships import RelationshipManager, ACCEPTED

User = get_user_model()

class UserAuthTests(APITestCase):
    def setUp(self):
        self.signup_url = reverse('users:signup')
        self.login_url = reverse('users:login')
        self.logout_url = reverse('users:logout')
        self.refresh_url = reverse('users:token_refresh')
        self.user_data = {
            'name': 'Auth User',
            'email': 'auth@example.com',
            'password': 'ComplexP@ssw0rd!',
        }
        self.login_data = {
            'email': 'auth@example.com',
            'password': 'ComplexP@ssw0rd!'
        }

    def test_user_signup_success(self):
        """
        Ensure new user can be registered.
        """
        response = self.client.post(self.signup_url, self.user_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.count(), 1)
        self.assertEqual(User.objects.get().name, 'Auth User')
        self.assertEqual(response.data['message'], 'User created successfully')
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['email'], 'auth@example.com')
        self.assertNotIn('password', response.data['user'])

    def test_password_is_hashed(self):
        self.client.post(self.signup_url, self.user_data, format='json')
        user = User.objects.get()
        self.assertNotEqual(user.password, self.user_data['password'])
        self.assertTrue(user.check_password(self.user_data['password']))

    def test_user_signup_existing_email(self):
        """
        Ensure registration fails if the email is taken, whatever its case.
        """
        User.objects.create_user(email='auth@example.com', name='Someone', password='ComplexP@ssw0rd!')
        data = self.user_data.copy()
        data['email'] = 'AUTH@example.com'
        response = self.client.post(self.signup_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)
        self.assertEqual(User.objects.count(), 1)

    def test_user_signup_missing_name(self):
        data = self.user_data.copy()
        del data['name']
        response = self.client.post(self.signup_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_user_signup_short_password(self):
        data = self.user_data.copy()
        data['password'] = 'short'
        response = self.client.post(self.signup_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_user_login_success(self):
        """
        Ensure a registered user can log in with email and password.
        """
        self.client.post(self.signup_url, self.user_data, format='json')
        response = self.client.post(self.login_url, self.login_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Login successful')
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'auth@example.com')

    def test_user_login_is_case_insensitive(self):
        self.client.post(self.signup_url, self.user_data, format='json')
        data = {'email': 'Auth@Example.com', 'password': self.login_data['password']}
        response = self.client.post(self.login_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_user_login_invalid_credentials(self):
        """
        Ensure login fails with a wrong password.
        """
        self.client.post(self.signup_url, self.user_data, format='json')
        data = {'email': 'auth@example.com', 'password': 'wrongpassword'}
        response = self.client.post(self.login_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('access', response.data)

    def test_user_login_nonexistent_user(self):
        response = self.client.post(self.login_url, self.login_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_blacklists_refresh_token(self):
        tokens = self.client.post(self.signup_url, self.user_data, format='json').data['tokens']
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        response = self.client.post(self.logout_url, {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(self.refresh_url, {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.client.post(self.logout_url, {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_requires_refresh_token(self):
        tokens = self.client.post(self.signup_url, self.user_data, format='json').data['tokens']
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        response = self.client.post(self.logout_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserProfileTests(APITestCase):
    def setUp(self):
        self.alice = User.objects.create_user(email='alice@example.com', name='Alice', password='password123')
        self.bob = User.objects.create_user(email='bob@example.com', name='Bob', password='password123')
        self.carol = User.objects.create_user(email='carol@example.com', name='Carol', password='password123')
        self.client.force_authenticate(user=self.alice)

    def test_get_user_with_relationships(self):
        manager = RelationshipManager()
        manager.send_request(self.bob.id, self.alice.id)
        manager.resolve_request(self.bob.id, self.alice.id, ACCEPTED)
        manager.send_request(self.carol.id, self.alice.id)

        response = self.client.get(reverse('users:user-detail', args=[self.alice.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('password', response.data)
        self.assertEqual([u['id'] for u in response.data['friends']], [self.bob.id])
        self.assertEqual([u['id'] for u in response.data['incoming_requests']], [self.carol.id])
        self.assertEqual(response.data['outgoing_requests'], [])

        response = self.client.get(reverse('users:user-detail', args=[self.carol.id]))
        self.assertEqual([u['id'] for u in response.data['outgoing_requests']], [self.alice.id])

    def test_get_unknown_user(self):
        response = self.client.get(reverse('users:user-detail', args=[999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_get_current_user_profile_me(self):
        response = self.client.get(reverse('users:user-me'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'alice@example.com')
        self.assertEqual(response.data['friends'], [])

    def test_unauthenticated_access_to_me_fails(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('users:user-me'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserModelTests(TestCase):
    def test_email_is_stored_lowercase(self):
        user = User.objects.create_user(email='Mixed@Example.COM', name='Mixed', password='password123')
        self.assertEqual(user.email, 'mixed@example.com')

    def test_create_user_requires_name(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='noname@example.com', name='', password='password123')

    def test_create_superuser(self):
        admin = User.objects.create_superuser(email='admin@example.com', name='Admin', password='password123')
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.is_superuser)

    def test_incoming_requests_mirror_outgoing(self):
        alice = User.objects.create_user(email='alice@example.com', name='Alice', password='password123')
        bob = User.objects.create_user(email='bob@example.com', name='Bob', password='password123')

        alice.outgoing_requests.add(bob)

        self.assertEqual(list(bob.incoming_requests.all()), [alice])
        self.assertEqual(list(alice.incoming_requests.all()), [])
