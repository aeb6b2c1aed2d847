from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView, RegisterView
from bookings.api import BookingViewSet
from payments.api import ClickCompleteView, ClickPrepareView, PaymeWebhookView
from places.api import PlaceViewSet

router = DefaultRouter()
router.register(r"places", PlaceViewSet, basename="place")
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path("api/payments/payme/", PaymeWebhookView.as_view(), name="payme-webhook"),
    path("api/payments/click/prepare/", ClickPrepareView.as_view(), name="click-prepare"),
    path("api/payments/click/complete/", ClickCompleteView.as_view(), name="click-complete"),
    path("api/", include(router.urls)),
]
