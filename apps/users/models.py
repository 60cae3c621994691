from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CustomUserManager(BaseUserManager):
    """Accounts are keyed on email; vendors and admins are plain accounts with a role."""

    def _create(self, email, password, role, **extra_fields):
        if not email:
            raise ValueError(_('The Email field must be set'))

        user = self.model(email=self.normalize_email(email), role=role, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        role = extra_fields.pop('role', CustomUser.CUSTOMER)
        return self._create(email, password, role, **extra_fields)

    def create_vendor(self, email, password=None, business_name='', **extra_fields):
        return self._create(email, password, CustomUser.VENDOR, business_name=business_name, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        for flag in ('is_staff', 'is_superuser'):
            if extra_fields.setdefault(flag, True) is not True:
                raise ValueError(_('Superuser must have %(flag)s=True.') % {'flag': flag})
        extra_fields.setdefault('is_active', True)

        return self._create(email, password, CustomUser.ADMIN, **extra_fields)

    def vendors(self):
        return self.filter(role=CustomUser.VENDOR, is_active=True)

    def customers(self):
        return self.filter(role=CustomUser.CUSTOMER)


class CustomUser(AbstractBaseUser, PermissionsMixin):
    """
    Marketplace account. Customers, vendors and back-office admins share
    this table and are told apart by `role`; a vendor's storefront is just
    its `business_name`.
    """

    CUSTOMER = 'customer'
    VENDOR = 'vendor'
    ADMIN = 'admin'

    ROLE_CHOICES = (
        (CUSTOMER, 'Customer'),
        (VENDOR, 'Vendor'),
        (ADMIN, 'Admin'),
    )

    email = models.EmailField(
        _('email address'),
        unique=True,
        error_messages={'unique': _('A user with that email already exists.')},
    )
    name = models.CharField(_('name'), max_length=150, blank=True)
    business_name = models.CharField(
        _('business name'), max_length=200, blank=True,
        help_text=_('Storefront name shown to customers (vendors only)'),
    )
    phone = models.CharField(_('phone'), max_length=20, blank=True)
    role = models.CharField(
        _('role'), max_length=10, choices=ROLE_CHOICES, default=CUSTOMER,
        help_text=_('User role in the marketplace'),
    )

    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    is_staff = models.BooleanField(
        _('staff status'), default=False,
        help_text=_('Designates whether the user can log into the admin site.'),
    )
    is_active = models.BooleanField(
        _('active'), default=True,
        help_text=_(
            'Designates whether this user should be treated as active. '
            'Unselect this instead of deleting accounts.'
        ),
    )

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-date_joined']
        db_table = 'users_customuser'

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name or self.email.partition('@')[0]

    @property
    def display_name(self):
        """Name used in vendor-facing emails and admin columns."""
        if self.is_vendor and self.business_name:
            return self.business_name
        return self.get_full_name()

    @property
    def is_vendor(self):
        return self.role == self.VENDOR

    @property
    def is_admin_role(self):
        return self.role == self.ADMIN
