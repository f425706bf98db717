"""
Batchman API ViewSets.

Batch errors are answered with their ``as_dict()`` payload and an HTTP
status chosen by error kind.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from batchman import presentation
from batchman.exceptions import BatchError, BatchNotFoundError
from batchman.models import Recipe
from batchman.protocols.providers import RecipeRef
from batchman.service import Planner

from .serializers import (
    ApplySuggestionsSerializer,
    AttributesSerializer,
    BatchCreateSerializer,
    BatchFilterSerializer,
    MembersSerializer,
    MergeSerializer,
    RescheduleSerializer,
    StatusSerializer,
    WindowSerializer,
)

STATUS_BY_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "transient": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class BatchErrorMixin:
    """Map BatchError to a JSON response."""

    def handle_exception(self, exc):
        if isinstance(exc, BatchError):
            code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
            return Response(exc.as_dict(), status=code)
        return super().handle_exception(exc)


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _slot(data):
    """(start, end) pair when a range was given, else the single date."""
    if data.get("end_date"):
        return (data["scheduled_date"], data["end_date"])
    return data.get("scheduled_date")


class BatchTypeViewSet(BatchErrorMixin, viewsets.ViewSet):
    """
    list: Active batch types with lead times and dependencies
    """

    permission_classes = [IsAuthenticated]

    def list(self, request):
        return Response([presentation.present_batch_type(t) for t in Planner.batch_types()])


class CandidateViewSet(BatchErrorMixin, viewsets.ViewSet):
    """
    list: Unbatched tiers and stock tasks grouped by batch type and recipe

    GET /api/batchman/candidates/?start=2026-05-01&end=2026-05-07
    """

    permission_classes = [IsAuthenticated]

    def list(self, request):
        window = _validated(WindowSerializer, request.query_params)
        groups = Planner.list_candidate_groups(window["start"], window["end"])
        return Response([presentation.present_group(g) for g in groups])


class SuggestionViewSet(BatchErrorMixin, viewsets.ViewSet):
    """
    list: Suggested production dates for candidates and open batches
    apply: Create or reschedule batches from suggestions
    """

    permission_classes = [IsAuthenticated]

    def list(self, request):
        window = _validated(WindowSerializer, request.query_params)
        suggestions = Planner.suggest_schedule(window["start"], window["end"])
        return Response([presentation.present_suggestion(s) for s in suggestions])

    @action(detail=False, methods=["post"])
    def apply(self, request):
        """
        Apply suggestions; partial failures are reported, not rolled back.

        POST /api/batchman/suggestions/apply/
        """
        data = _validated(ApplySuggestionsSerializer, request.data)
        suggestions = Planner.suggest_schedule(data["start"], data["end"], today=data["today"])
        if "refs" in data:
            wanted = set(data["refs"])
            suggestions = [s for s in suggestions if s.ref in wanted]

        result = Planner.apply_suggestions(suggestions, user=request.user)
        return Response(
            {
                "created": [presentation.present_batch(b) for b in result.created],
                "failed": [{"ref": f.ref, "error": f.error} for f in result.failed],
            },
            status=status.HTTP_207_MULTI_STATUS if result.has_failures else status.HTTP_200_OK,
        )


class BatchViewSet(BatchErrorMixin, viewsets.ViewSet):
    """
    list: Batches in a date window (filters: start, end, batch_type, status)
    create: Create a batch (merges into an existing batch on the same slot)
    retrieve: Batch detail with member tiers and stock tasks
    destroy: Delete a batch; members return to the unscheduled pool
    reschedule / merge / add_members / remove_members / status / attributes
    reconcile: Merge batches sharing a slot
    """

    permission_classes = [IsAuthenticated]

    def list(self, request):
        filters = _validated(BatchFilterSerializer, request.query_params)
        batches = Planner.list_batches(
            start=filters["start"],
            end=filters["end"],
            batch_type=filters["batch_type"] or None,
            status=filters.get("status"),
        )
        return Response([presentation.present_batch(b) for b in batches])

    def create(self, request):
        data = _validated(BatchCreateSerializer, request.data)
        batch = Planner.create_batch(
            batch_type=data["batch_type"],
            recipe=self._recipe(data),
            scheduled_date=_slot(data),
            tier_ids=data["tier_ids"],
            stock_task_ids=data["stock_task_ids"],
            name=data["name"],
            notes=data["notes"],
            user=request.user,
        )
        return Response(presentation.present_batch(batch, detail=True), status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        batch = Planner.get_batch(int(pk))
        return Response(presentation.present_batch(batch, detail=True))

    def destroy(self, request, pk=None):
        if not Planner.delete_batch(int(pk), user=request.user):
            raise BatchNotFoundError("BATCH_NOT_FOUND", batch_id=int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        """
        POST /api/batchman/batches/{pk}/reschedule/
        {"scheduled_date": "2026-05-02"}   // null moves the batch back to draft
        """
        data = _validated(RescheduleSerializer, request.data)
        result = Planner.reschedule_batch(int(pk), _slot(data), user=request.user)
        return Response(
            {
                "merged": result.merged,
                "merged_into_id": result.merged_into_id,
                "batch": presentation.present_batch(result.batch, detail=True),
            }
        )

    @action(detail=True, methods=["post"])
    def merge(self, request, pk=None):
        """POST /api/batchman/batches/{pk}/merge/ {"target_id": 7}"""
        data = _validated(MergeSerializer, request.data)
        target = Planner.merge_batches(int(pk), data["target_id"], user=request.user)
        return Response(presentation.present_batch(target, detail=True))

    @action(detail=True, methods=["post"], url_path="add-members")
    def add_members(self, request, pk=None):
        data = _validated(MembersSerializer, request.data)
        batch = Planner.add_members(
            int(pk), data["tier_ids"], data["stock_task_ids"], user=request.user
        )
        return Response(presentation.present_batch(batch, detail=True))

    @action(detail=True, methods=["post"], url_path="remove-members")
    def remove_members(self, request, pk=None):
        data = _validated(MembersSerializer, request.data)
        result = Planner.remove_members(
            int(pk), data["tier_ids"], data["stock_task_ids"], user=request.user
        )
        return Response(
            {
                "removed": result.removed,
                "deleted": result.deleted,
                "batch": presentation.present_batch(result.batch) if result.batch else None,
            }
        )

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        data = _validated(StatusSerializer, request.data)
        batch = Planner.set_status(int(pk), data["status"], user=request.user)
        return Response(presentation.present_batch(batch))

    @action(detail=True, methods=["patch"])
    def attributes(self, request, pk=None):
        """PATCH /api/batchman/batches/{pk}/attributes/ {"duration_days": 2, "notes": "..."}"""
        data = _validated(AttributesSerializer, request.data)
        batch = Planner.update_batch_attributes(int(pk), user=request.user, **data)
        return Response(presentation.present_batch(batch))

    @action(detail=False, methods=["post"])
    def reconcile(self, request):
        result = Planner.reconcile()
        return Response(
            {
                "merged": result.merged,
                "rekeyed": result.rekeyed,
                "survivors": result.survivors,
                "conflicts": result.conflicts,
            }
        )

    def _recipe(self, data):
        if data["recipe_id"] is not None and not data["recipe_name"]:
            recipe = Recipe.objects.filter(pk=data["recipe_id"]).first()
            if recipe is None:
                raise BatchNotFoundError("RECIPE_NOT_FOUND", recipe_id=data["recipe_id"])
            return recipe.as_ref()
        return RecipeRef(name=data["recipe_name"], id=data["recipe_id"])
