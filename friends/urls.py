from django.urls import path
from .views import (
    FriendStatusView, FriendRequestCreateView, FriendRequestDetailView,
    IncomingRequestListView, OutgoingRequestListView, FriendListView, FriendDetailView,
)

app_name = 'friends'

urlpatterns = [
    # Friend requests
    path('friend-requests/check/<int:user_id>/<int:other_id>/', FriendStatusView.as_view(), name='friend-request-check'),
    path('friend-request/', FriendRequestCreateView.as_view(), name='friend-request-create'),
    path('friend-request/<str:request_id>/', FriendRequestDetailView.as_view(), name='friend-request-detail'),
    path('friend-requests/<int:user_id>/', IncomingRequestListView.as_view(), name='friend-requests-received'),
    path('friend-requests/<int:user_id>/sent/', OutgoingRequestListView.as_view(), name='friend-requests-sent'),

    # Friends
    path('friends/<int:user_id>/', FriendListView.as_view(), name='friends-list'),
    path('friends/<int:user_id>/<int:friend_id>/', FriendDetailView.as_view(), name='friends-detail'),
]
