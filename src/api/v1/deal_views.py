"""ViewSets and endpoints for retail group-buy deals."""
from __future__ import annotations

from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from admission.controller import ConcurrencyConflict, JoinRequest
from api.v1.deal_serializers import (
    AdmissionResultSerializer,
    DealCreateSerializer,
    DealSerializer,
    JoinDealSerializer,
    ParticipantSerializer,
    TierTableSerializer,
)
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsOwnerOrAdmin, IsSupplierOrAdmin
from deals.models import Deal, Participant
from deals.services import (
    activate_deal,
    cancel_participation,
    close_deal,
    create_deal,
    deal_quote,
    join_deal,
    participant_commission,
    price_simulation,
    replace_tiers,
)


def admission_response(result, created_status=status.HTTP_201_CREATED) -> Response:
    """Admitted joins are 201; rejections are a 200 carrying the reason."""
    code = created_status if result.is_admitted else status.HTTP_200_OK
    return Response(AdmissionResultSerializer(result).data, status=code)


def conflict_response(exc: ConcurrencyConflict) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)


class DealViewSet(viewsets.ReadOnlyModelViewSet):
    """Deals: public catalogue, supplier authoring and customer joins."""

    serializer_class = DealSerializer
    queryset = Deal.objects.select_related("supplier").prefetch_related("tiers")
    filterset_fields = ["status", "category", "supplier"]
    search_fields = ["name", "description"]
    ordering_fields = ["created_at", "end_time", "original_price", "confirmed_count"]
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ("list", "retrieve", "quote"):
            return [AllowAny()]
        if self.action in ("create", "activate", "tiers", "close", "price_simulation", "participants"):
            return [IsAuthenticated(), IsSupplierOrAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if self.action in ("list", "retrieve", "quote", "join"):
            if user.is_authenticated and user.is_admin:
                return qs
            if user.is_authenticated and user.is_supplier:
                return qs.filter(Q(supplier=user) | ~Q(status=Deal.Status.DRAFT))
            return qs.exclude(status=Deal.Status.DRAFT)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = DealCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            deal = create_deal(request.user, **serializer.validated_data)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(self.get_serializer(deal).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["put"])
    def tiers(self, request, pk=None):
        deal = self.get_object()
        serializer = TierTableSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            replace_tiers(deal, serializer.validated_data["tiers"], actor=request.user)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        deal.refresh_from_db()
        return Response(self.get_serializer(deal).data)

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        deal = self.get_object()
        try:
            deal = activate_deal(deal, actor=request.user)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(self.get_serializer(deal).data)

    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        deal = self.get_object()
        force = bool(request.data.get("force", False)) and request.user.is_admin
        try:
            deal = close_deal(deal, force=force)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(self.get_serializer(deal).data)

    @action(detail=True, methods=["get"])
    def quote(self, request, pk=None):
        return Response(deal_quote(self.get_object()))

    @action(detail=True, methods=["get"], url_path="price-simulation")
    def price_simulation(self, request, pk=None):
        deal = self.get_object()
        raw = request.query_params.get("tier", "0")
        try:
            rows = price_simulation(deal, int(raw))
        except (TypeError, ValueError):
            raise ValidationError({"tier": "Indice de palier invalide."})
        except IndexError as exc:
            raise ValidationError({"tier": str(exc)})
        return Response({"deal_id": str(deal.pk), "tier": int(raw), "positions": rows})

    @action(detail=True, methods=["get"])
    def participants(self, request, pk=None):
        deal = self.get_object()
        qs = deal.participants.select_related("deal").order_by("position")
        page = self.paginate_queryset(qs)
        serializer = ParticipantSerializer(page if page is not None else qs, many=True)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)

    @action(detail=True, methods=["post"])
    def join(self, request, pk=None):
        deal = self.get_object()
        serializer = JoinDealSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user
        join_request = JoinRequest(
            user=user,
            full_name=data["name"] or user.get_full_name(),
            email=data["email"] or user.email,
            phone=data["phone"] or user.phone,
            quantity=data["quantity"],
        )
        try:
            result = join_deal(deal, join_request)
        except ConcurrencyConflict as exc:
            return conflict_response(exc)
        return admission_response(result)


class ParticipantViewSet(viewsets.ReadOnlyModelViewSet):
    """A customer's own participations; admins and suppliers see their scope."""

    serializer_class = ParticipantSerializer
    queryset = Participant.objects.select_related("deal", "user")
    permission_classes = [IsAuthenticated, IsOwnerOrAdmin]
    filterset_fields = ["deal", "admission_status"]
    ordering_fields = ["joined_at", "position"]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user.is_admin:
            return qs
        if user.is_supplier:
            return qs.filter(Q(deal__supplier=user) | Q(user=user))
        return qs.filter(user=user)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        participant = self.get_object()
        try:
            participant = cancel_participation(participant, actor=request.user)
        except ValueError as exc:
            raise ValidationError({"detail": str(exc)})
        return Response(self.get_serializer(participant).data)

    @action(detail=True, methods=["get"])
    def commission(self, request, pk=None):
        participant = self.get_object()
        if not (request.user.is_admin or participant.deal.supplier_id == request.user.pk):
            return Response(
                {"detail": "Action reservee au fournisseur de l'offre ou a un administrateur."},
                status=status.HTTP_403_FORBIDDEN,
            )
        split = participant_commission(participant)
        return Response(split.as_dict() if split else None)
