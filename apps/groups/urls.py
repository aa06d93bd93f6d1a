from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.GroupViewSet, basename='group')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/              - List user's groups
    # POST   /api/groups/              - Create group
    # GET    /api/groups/{id}/         - Get group details
    # DELETE /api/groups/{id}/         - Delete group (creator)

    # Custom group actions
    # GET    /api/groups/{id}/members/        - List members with balances
    # POST   /api/groups/{id}/add_member/     - Add guest or registered user
    # DELETE /api/groups/{id}/remove_member/  - Remove member (creator)

    path('', include(router.urls)),
]
