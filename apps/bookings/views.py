from django.db.models import Q
from rest_framework import generics, status, viewsets
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.bookings.models import Booking, BookingStatus
from apps.bookings.serializers import BookingCreateSerializer, BookingSerializer
from apps.bookings.services import accept_booking, create_booking, decline_booking
from apps.common.filters import apply_ordering, clean_param, filter_created_range, filter_status
from apps.common.pagination import PageLimitPagination
from apps.common.permissions import RolePermission


class BookingCreateView(generics.GenericAPIView):
    serializer_class = BookingCreateSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = create_booking(serializer.validated_data)
        return Response(
            {
                "message": "Booking added successfully",
                "bookingId": str(booking.id),
                "booking": BookingSerializer(booking).data,
            },
            status=status.HTTP_201_CREATED,
        )


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Booking.objects.select_related("customer", "order").prefetch_related("details__service")
    serializer_class = BookingSerializer
    permission_classes = [RolePermission]
    pagination_class = PageLimitPagination
    capability_map = {
        "list": ["bookings.view"],
        "retrieve": ["bookings.view"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset

        params = self.request.query_params
        queryset = filter_status(queryset, params, BookingStatus)
        queryset = filter_created_range(queryset, params)

        search = clean_param(params.get("search"))
        if search:
            queryset = queryset.filter(
                Q(customer__name__icontains=search)
                | Q(customer__phone__icontains=search)
                | Q(customer__phone_normalized__icontains=search)
            )
        return apply_ordering(queryset, params)


class BookingDecisionView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"post": ["bookings.manage"]}


class BookingAcceptView(BookingDecisionView):
    def post(self, request, pk, *args, **kwargs):
        order = accept_booking(pk, actor=request.user)
        return Response(
            {
                "message": "Booking accepted and order created",
                "bookingId": str(pk),
                "orderId": str(order.id),
                "orderCode": order.order_code,
            },
            status=status.HTTP_200_OK,
        )


class BookingDeclineView(BookingDecisionView):
    def post(self, request, pk, *args, **kwargs):
        booking = decline_booking(pk, actor=request.user)
        return Response(
            {"message": "Booking declined", "bookingId": str(booking.id), "status": booking.status},
            status=status.HTTP_200_OK,
        )
