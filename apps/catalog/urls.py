from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.catalog.views import ActiveServiceListView, ServiceViewSet

router = DefaultRouter()
router.register("services", ServiceViewSet, basename="service")

urlpatterns = [
    path("services/active/", ActiveServiceListView.as_view(), name="service-active-list"),
]
urlpatterns += router.urls
