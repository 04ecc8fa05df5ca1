"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from api.v1 import deal_views, project_views
from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r"deals", deal_views.DealViewSet, basename="deal")
router.register(r"participants", deal_views.ParticipantViewSet, basename="participant")
router.register(r"projects", project_views.ProjectViewSet, basename="project")
router.register(r"registrations", project_views.RegistrationViewSet, basename="registration")


app_name = "api"
urlpatterns = [
    path("", include(router.urls)),
    path("auth/me/", v1_views.MeView.as_view(), name="auth-me"),
]
