"""
Batchman API Serializers.

Input validation only; responses are built by batchman.presentation.
"""

from rest_framework import serializers

from batchman.models import BatchStatus


class WindowSerializer(serializers.Serializer):
    """Optional due-date window ?start=YYYY-MM-DD&end=YYYY-MM-DD."""

    start = serializers.DateField(required=False, allow_null=True, default=None)
    end = serializers.DateField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        start, end = attrs.get("start"), attrs.get("end")
        if start and end and end < start:
            raise serializers.ValidationError({"end": "End date is before start date."})
        return attrs


class BatchFilterSerializer(WindowSerializer):
    batch_type = serializers.CharField(required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(choices=BatchStatus.choices, required=False)


class MembersSerializer(serializers.Serializer):
    tier_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    stock_task_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, default=list
    )


class BatchCreateSerializer(MembersSerializer):
    """
    POST /batches/
    {
        "batch_type": "BAKE",
        "recipe_name": "Vanilla Sponge",
        "scheduled_date": "2026-05-01",
        "end_date": "2026-05-02",     // optional, makes a range
        "tier_ids": [1, 2, 3]
    }
    """

    batch_type = serializers.CharField()
    recipe_name = serializers.CharField(required=False, allow_blank=True, default="")
    recipe_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    scheduled_date = serializers.DateField(required=False, allow_null=True, default=None)
    end_date = serializers.DateField(required=False, allow_null=True, default=None)
    name = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs["recipe_name"] and attrs["recipe_id"] is None:
            raise serializers.ValidationError("Either recipe_name or recipe_id is required.")
        if attrs["end_date"] and not attrs["scheduled_date"]:
            raise serializers.ValidationError({"end_date": "Requires scheduled_date."})
        return attrs


class RescheduleSerializer(serializers.Serializer):
    """scheduled_date null moves the batch back to draft."""

    scheduled_date = serializers.DateField(allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        if attrs["end_date"] and not attrs["scheduled_date"]:
            raise serializers.ValidationError({"end_date": "Requires scheduled_date."})
        return attrs


class MergeSerializer(serializers.Serializer):
    target_id = serializers.IntegerField()


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BatchStatus.choices)


class AttributesSerializer(serializers.Serializer):
    duration_days = serializers.IntegerField(required=False, min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    assigned_to = serializers.IntegerField(required=False, allow_null=True)


class ApplySuggestionsSerializer(WindowSerializer):
    """
    POST /suggestions/apply/
    {
        "start": "2026-05-01",
        "end": "2026-05-07",
        "refs": ["BAKE-Vanilla Sponge", "batch:12"]   // optional, all when omitted
    }
    """

    refs = serializers.ListField(child=serializers.CharField(), required=False)
    today = serializers.DateField(required=False, allow_null=True, default=None)
