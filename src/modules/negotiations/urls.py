"""Negotiation URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.negotiations.views import NegotiationViewSet

router = DefaultRouter(trailing_slash=True)
router.register("negotiations", NegotiationViewSet, basename="negotiation")

urlpatterns = router.urls
