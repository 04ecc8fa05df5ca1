"""Custom DRF permissions for the group-buy API."""
from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsAdmin(BasePermission):
    """Allow access to platform administrators (ADMIN role or superuser)."""

    message = "Action reservee aux administrateurs."

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.is_admin


class IsSupplierOrAdmin(BasePermission):
    """Allow suppliers and administrators; suppliers only on their own deals."""

    message = "Action reservee au fournisseur de l'offre ou a un administrateur."

    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and (user.is_admin or user.is_supplier)

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin:
            return True
        return getattr(obj, "supplier_id", None) == user.pk


class IsDeveloperOrAdmin(BasePermission):
    """Allow property developers and administrators."""

    message = "Action reservee aux promoteurs et administrateurs."

    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and (user.is_admin or user.is_developer)

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin:
            return True
        developer = getattr(obj, "developer", None)
        return developer is not None and developer.user_id == user.pk


class IsOwnerOrAdmin(BasePermission):
    """Read for everyone authenticated; writes only by the record's user or an admin."""

    message = "Vous ne pouvez modifier que vos propres inscriptions."

    def has_permission(self, request, view):
        return request.user.is_authenticated

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        return user.is_admin or getattr(obj, "user_id", None) == user.pk
