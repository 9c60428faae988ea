from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.filters import apply_ordering, clean_param, filter_created_range, filter_status, match_choice
from apps.common.pagination import PageLimitPagination
from apps.common.permissions import RolePermission
from apps.orders.models import Order, OrderSource, OrderStatus, PaymentStatus
from apps.orders.serializers import (
    OrderEditSerializer,
    OrderPaymentSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    WalkInOrderSerializer,
)
from apps.orders.services import create_walk_in_order, edit_order, transition_order_status, update_order_payment


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Order.objects.select_related("customer").prefetch_related("details__service")
    serializer_class = OrderSerializer
    permission_classes = [RolePermission]
    pagination_class = PageLimitPagination
    capability_map = {
        "list": ["orders.view"],
        "retrieve": ["orders.view"],
        "walk_in": ["orders.create"],
        "change_status": ["orders.manage"],
        "payment": ["orders.manage"],
        "edit": ["orders.edit"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset

        params = self.request.query_params
        queryset = filter_status(queryset, params, OrderStatus)

        payment_status = clean_param(params.get("payment_status"))
        if payment_status and payment_status.lower() != "all":
            queryset = queryset.filter(payment_status=match_choice(payment_status, PaymentStatus, "payment_status"))

        source = clean_param(params.get("source"))
        if source and source.lower() != "all":
            queryset = queryset.filter(source=match_choice(source, OrderSource, "source"))

        queryset = filter_created_range(queryset, params)

        search = clean_param(params.get("search"))
        if search:
            queryset = queryset.filter(
                Q(order_code__icontains=search)
                | Q(customer__name__icontains=search)
                | Q(customer__phone__icontains=search)
                | Q(guest_name__icontains=search)
                | Q(guest_phone__icontains=search)
            )
        return apply_ordering(queryset, params)

    def _order_payload(self, order_id, message):
        order = self.get_queryset().get(pk=order_id)
        return {"message": message, "order": OrderSerializer(order).data}

    @action(detail=False, methods=["post"], url_path="create")
    def walk_in(self, request):
        serializer = WalkInOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = create_walk_in_order(serializer.validated_data, actor=request.user)
        payload = self._order_payload(order.id, "Walk-in order created successfully")
        payload.update({"orderId": str(order.id), "orderCode": order.order_code})
        return Response(payload, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch"], url_path="status")
    def change_status(self, request, pk=None):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = transition_order_status(pk, serializer.validated_data["status"], actor=request.user)
        return Response(self._order_payload(order.id, "Order status updated successfully"), status=status.HTTP_200_OK)

    @action(detail=True, methods=["patch"])
    def payment(self, request, pk=None):
        serializer = OrderPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = update_order_payment(
            pk,
            serializer.validated_data["payment_status"],
            paid_amount=serializer.validated_data.get("paid_amount"),
            actor=request.user,
        )
        payload = self._order_payload(order.id, "Payment status updated successfully")
        payload.update({"payment_status": order.payment_status, "paid_amount": str(order.paid_amount)})
        return Response(payload, status=status.HTTP_200_OK)

    @action(detail=True, methods=["put"])
    def edit(self, request, pk=None):
        serializer = OrderEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = edit_order(pk, serializer.validated_data["updatedDetails"], actor=request.user)
        return Response(self._order_payload(order.id, "Order updated successfully"), status=status.HTTP_200_OK)
