from django.contrib import admin
from django.contrib.admin import AdminSite
from django.shortcuts import redirect
from users.models import User
from blinks.models import Blink


class BlinkspaceAdminSite(AdminSite):
    site_header = 'Blinkspace Administration'
    site_title = 'Blinkspace Admin'
    index_title = 'Blinkspace Dashboard'

    def index(self, request, extra_context=None):
        # Users are the landing page
        return redirect('blinkspace_admin:users_user_changelist')


blinkspace_admin_site = BlinkspaceAdminSite(name='blinkspace_admin')


@admin.register(User, site=blinkspace_admin_site)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'date_joined', 'is_staff')
    search_fields = ('email', 'name')
    list_filter = ('is_active', 'is_staff', 'date_joined')
    exclude = ('password',)
    filter_horizontal = ('friends', 'outgoing_requests')


@admin.register(Blink, site=blinkspace_admin_site)
class BlinkAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'media_type', 'likes', 'created_at')
    search_fields = ('content', 'user__email')
    list_filter = ('media_type', 'created_at')
    raw_id_fields = ('user',)
