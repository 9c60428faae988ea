from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.bookings.views import BookingAcceptView, BookingCreateView, BookingDeclineView, BookingViewSet

router = DefaultRouter()
router.register("bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("bookings/add/", BookingCreateView.as_view(), name="booking-add"),
    path("bookings/accept/<uuid:pk>/", BookingAcceptView.as_view(), name="booking-accept"),
    path("bookings/decline/<uuid:pk>/", BookingDeclineView.as_view(), name="booking-decline"),
]
urlpatterns += router.urls
