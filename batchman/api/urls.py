"""
Batchman API URLs.

Include this in your project's urlpatterns:

    path("api/batchman/", include("batchman.api.urls")),
"""

from rest_framework.routers import DefaultRouter

from .views import BatchTypeViewSet, BatchViewSet, CandidateViewSet, SuggestionViewSet

router = DefaultRouter()
router.register("batch-types", BatchTypeViewSet, basename="batch-type")
router.register("candidates", CandidateViewSet, basename="candidate")
router.register("suggestions", SuggestionViewSet, basename="suggestion")
router.register("batches", BatchViewSet, basename="batch")

urlpatterns = router.urls
