from rest_framework.routers import DefaultRouter

from .views import EventEntryViewSet

router = DefaultRouter()
router.register("entries", EventEntryViewSet, basename="event-entry")

urlpatterns = router.urls
