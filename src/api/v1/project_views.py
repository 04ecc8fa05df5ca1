"""ViewSets and endpoints for real-estate projects and their registrants."""
from __future__ import annotations

from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from admission.controller import ConcurrencyConflict
from api.v1.deal_views import admission_response, conflict_response
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsAdmin, IsDeveloperOrAdmin, IsOwnerOrAdmin
from api.v1.project_serializers import (
    AdvanceStageSerializer,
    ConfirmSerializer,
    ProjectCreateSerializer,
    ProjectSerializer,
    RegisterSerializer,
    RegistrationSerializer,
)
from api.v1.deal_serializers import TierTableSerializer
from realestate.models import Project, Registration
from realestate.services import (
    active_registration,
    advance_stage,
    cancel_registration,
    confirm_registration,
    create_project,
    my_status,
    project_summary,
    register_for_project,
    replace_project_tiers,
    rsvp_webinar,
    stage_info,
)


class ProjectViewSet(viewsets.ReadOnlyModelViewSet):
    """Projects: catalogue, funnel actions and stage administration."""

    serializer_class = ProjectSerializer
    queryset = Project.objects.select_related("developer").prefetch_related("tiers")
    filterset_fields = ["city", "current_stage", "developer"]
    search_fields = ["name", "city", "region"]
    ordering_fields = ["created_at", "market_price_baseline", "confirmed_count"]
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ("list", "retrieve", "stage", "summary"):
            return [AllowAny()]
        if self.action == "advance_stage":
            return [IsAuthenticated(), IsAdmin()]
        if self.action in ("create", "tiers", "registrations"):
            return [IsAuthenticated(), IsDeveloperOrAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user.is_authenticated and user.is_admin:
            return qs
        if user.is_authenticated and user.is_developer:
            return qs.filter(Q(is_published=True) | Q(developer__user=user))
        return qs.filter(is_published=True)

    def create(self, request, *args, **kwargs):
        serializer = ProjectCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        developer = data.pop("developer")
        if not request.user.is_admin and developer.user_id != request.user.pk:
            raise PermissionDenied("Vous ne pouvez creer des projets que pour votre propre societe.")
        try:
            project = create_project(developer, **data)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(self.get_serializer(project).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["put"])
    def tiers(self, request, pk=None):
        project = self.get_object()
        serializer = TierTableSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            replace_project_tiers(project, serializer.validated_data["tiers"], actor=request.user)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        project.refresh_from_db()
        return Response(self.get_serializer(project).data)

    @action(detail=True, methods=["get"])
    def stage(self, request, pk=None):
        return Response(stage_info(self.get_object()))

    @action(detail=True, methods=["get"])
    def summary(self, request, pk=None):
        return Response(project_summary(self.get_object()))

    @action(detail=True, methods=["post"], url_path="advance-stage")
    def advance_stage(self, request, pk=None):
        project = self.get_object()
        serializer = AdvanceStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            project = advance_stage(project, serializer.validated_data["target"], actor=request.user)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(stage_info(project))

    @action(detail=True, methods=["post"])
    def register(self, request, pk=None):
        project = self.get_object()
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        user = request.user
        data["full_name"] = data["full_name"] or user.get_full_name() or user.email
        data["phone"] = data["phone"] or user.phone
        try:
            result = register_for_project(project, user, **data)
        except ConcurrencyConflict as exc:
            return conflict_response(exc)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return admission_response(result)

    @action(detail=True, methods=["post"])
    def rsvp(self, request, pk=None):
        registration = self._own_registration(request)
        try:
            registration = rsvp_webinar(registration)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(RegistrationSerializer(registration).data)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        serializer = ConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration = self._own_registration(request)
        try:
            registration = confirm_registration(
                registration, serializer.validated_data["consent_data_transfer"],
            )
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(RegistrationSerializer(registration).data)

    @action(detail=True, methods=["get"], url_path="my-status")
    def my_status(self, request, pk=None):
        status_data = my_status(self.get_object(), request.user)
        if status_data is None:
            raise NotFound("Vous n'etes pas inscrit sur ce projet.")
        return Response(status_data)

    @action(detail=True, methods=["get"])
    def registrations(self, request, pk=None):
        project = self.get_object()
        if not request.user.is_admin and project.developer.user_id != request.user.pk:
            raise PermissionDenied("Action reservee au promoteur du projet ou a un administrateur.")
        qs = project.registrations.select_related("project").order_by("position")
        page = self.paginate_queryset(qs)
        serializer = RegistrationSerializer(page if page is not None else qs, many=True)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)

    def _own_registration(self, request) -> Registration:
        registration = active_registration(self.get_object(), request.user)
        if registration is None:
            raise NotFound("Aucune inscription active sur ce projet. Inscrivez-vous d'abord.")
        return registration


class RegistrationViewSet(viewsets.ReadOnlyModelViewSet):
    """A user's own registrations; admins see everything."""

    serializer_class = RegistrationSerializer
    queryset = Registration.objects.select_related("project", "user")
    permission_classes = [IsAuthenticated, IsOwnerOrAdmin]
    filterset_fields = ["project", "admission_status", "funnel_status"]
    ordering_fields = ["joined_at", "position"]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user.is_admin:
            return qs
        if user.is_developer:
            return qs.filter(Q(project__developer__user=user) | Q(user=user))
        return qs.filter(user=user)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        registration = self.get_object()
        try:
            registration = cancel_registration(registration, actor=request.user)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(self.get_serializer(registration).data)
