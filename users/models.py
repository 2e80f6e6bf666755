from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
from blinkspace.models import ValidationModelMixin
import logging

logger = logging.getLogger('blinkspace')


class UserManager(BaseUserManager):
    """
    Manager for email-identified users.
    """
    use_in_migrations = True

    def create_user(self, email, name, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required")
        if not name:
            raise ValueError("Name is required")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, name=name, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, name, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        return self.create_user(email, name, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin, ValidationModelMixin):
    """
    Account with the relationship sets used by the friends app.

    ``friends`` is kept symmetric by friends.relationships, which always
    writes both directions in one transaction. ``outgoing_requests`` is a
    single directed set: its reverse accessor ``incoming_requests`` reads the
    same join rows, so B in A.outgoing_requests exactly when A is in
    B.incoming_requests.
    """
    email = models.EmailField(
        unique=True,
        error_messages={
            'unique': "A user with that email already exists.",
        },
    )
    name = models.CharField(max_length=150)
    profile_image = models.CharField(max_length=500, blank=True, null=True)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(default=timezone.now)

    friends = models.ManyToManyField(
        'self',
        symmetrical=False,
        related_name='friend_of',
        blank=True,
    )
    outgoing_requests = models.ManyToManyField(
        'self',
        symmetrical=False,
        related_name='incoming_requests',
        blank=True,
    )

    objects = UserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['id']

    def __str__(self):
        return self.email

    def save(self, *args, **kwargs):
        """Override save to normalize email"""
        if self.email:
            self.email = self.email.lower()

        super().save(*args, **kwargs)
