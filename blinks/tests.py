import os

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from users.models import User
from .models import Blink

# Smallest valid GIF
GIF_BYTES = (
    b'GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01\x00'
    b'\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;'
)


class BlinkAPITests(APITestCase):
    def setUp(self):
        """Set up test data"""
        self.alice = User.objects.create_user(email='alice@example.com', name='Alice', password='password123')
        self.bob = User.objects.create_user(email='bob@example.com', name='Bob', password='password123')

        self.client = APIClient()
        self.client.force_authenticate(user=self.alice)

        self.list_url = reverse('blinks:blink-list')

    def test_create_text_blink(self):
        response = self.client.post(self.list_url, {'content': 'Hello from the other side'}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content'], 'Hello from the other side')
        self.assertEqual(response.data['media_type'], 'none')
        self.assertIsNone(response.data['media_url'])
        self.assertEqual(response.data['likes'], 0)
        self.assertEqual(response.data['comments'], [])
        self.assertEqual(response.data['user'], {'id': self.alice.id, 'name': 'Alice', 'email': 'alice@example.com'})

    def test_author_is_the_authenticated_user(self):
        response = self.client.post(self.list_url, {'content': 'mine', 'user': self.bob.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Blink.objects.get().user, self.alice)

    def test_create_image_blink(self):
        image = SimpleUploadedFile('pixel.gif', GIF_BYTES, content_type='image/gif')

        response = self.client.post(self.list_url, {'content': 'look', 'media': image}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['media_type'], 'image')
        self.assertTrue(response.data['media_url'].startswith('http://testserver/uploads/blinks/'))
        self.assertTrue(response.data['media_url'].endswith('.gif'))
        self.assertNotIn('media', response.data)

    def test_create_video_blink(self):
        video = SimpleUploadedFile('clip.mp4', b'\x00\x00\x00\x18ftypmp42', content_type='video/mp4')

        response = self.client.post(self.list_url, {'media': video}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['media_type'], 'video')

    def test_reject_other_media_types(self):
        document = SimpleUploadedFile('notes.pdf', b'%PDF-1.4', content_type='application/pdf')

        response = self.client.post(self.list_url, {'content': 'read this', 'media': document}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Only images and videos are allowed.', response.data['detail']['media'])
        self.assertEqual(Blink.objects.count(), 0)

    def test_reject_oversized_media(self):
        too_big = SimpleUploadedFile('huge.png', b'0' * (10 * 1024 * 1024 + 1), content_type='image/png')

        response = self.client.post(self.list_url, {'media': too_big}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('media', response.data['detail'])
        self.assertEqual(Blink.objects.count(), 0)

    def test_word_limit(self):
        fifteen = ' '.join(['word'] * 15)
        response = self.client.post(self.list_url, {'content': fifteen}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(self.list_url, {'content': fifteen + ' more'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail']['content'], ['Blink cannot exceed 15 words.'])

    def test_character_limit(self):
        response = self.client.post(self.list_url, {'content': 'a' * 201}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('content', response.data['detail'])

    def test_list_newest_first(self):
        first = Blink.objects.create(user=self.alice, content='first')
        second = Blink.objects.create(user=self.bob, content='second')

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['id'] for b in response.data], [second.id, first.id])
        self.assertEqual(response.data[0]['user']['email'], 'bob@example.com')

    def test_only_author_can_delete(self):
        blink = Blink.objects.create(user=self.bob, content='bob was here')
        url = reverse('blinks:blink-detail', args=[blink.id])

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.bob)
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Blink.objects.exists())

    def test_delete_removes_media_file(self):
        image = SimpleUploadedFile('pixel.gif', GIF_BYTES, content_type='image/gif')
        response = self.client.post(self.list_url, {'media': image}, format='multipart')
        blink = Blink.objects.get(pk=response.data['id'])
        path = blink.media.path
        self.assertTrue(os.path.exists(path))

        self.client.delete(reverse('blinks:blink-detail', args=[blink.id]))

        self.assertFalse(os.path.exists(path))

    def test_blinks_are_not_editable(self):
        blink = Blink.objects.create(user=self.alice, content='typo')

        response = self.client.patch(reverse('blinks:blink-detail', args=[blink.id]), {'content': 'fixed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class BlinkModelTests(SimpleTestCase):
    def test_media_type_for(self):
        self.assertEqual(Blink.media_type_for('image/jpeg'), Blink.MEDIA_IMAGE)
        self.assertEqual(Blink.media_type_for('video/webm'), Blink.MEDIA_VIDEO)
        self.assertEqual(Blink.media_type_for('text/plain'), Blink.MEDIA_NONE)
        self.assertEqual(Blink.media_type_for(None), Blink.MEDIA_NONE)
