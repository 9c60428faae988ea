from rest_framework.routers import DefaultRouter

from apps.inventory.views import InventoryItemViewSet, InventoryMovementViewSet, PackageIncludeViewSet

router = DefaultRouter()
router.register("items", InventoryItemViewSet, basename="inventory-item")
router.register("package-includes", PackageIncludeViewSet, basename="inventory-package-include")
router.register("movements", InventoryMovementViewSet, basename="inventory-movement")

urlpatterns = router.urls
