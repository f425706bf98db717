"""
Presentation adapter.

Turns candidate groups, suggestions and batches into plain dicts ready for
JSON, with masses formatted in the display unit ("1200 g (1.20 kg)").
Transport-agnostic: the DRF views and the management commands both use it.
"""

from batchman import quantities
from batchman.units import format_mass


def _date(value):
    return value.isoformat() if value else None


def _masses(frosting_grams, stock_grams) -> dict:
    return {
        "total_frosting_grams": round(float(frosting_grams), 2),
        "total_stock_grams": round(float(stock_grams), 2),
        "frosting_display": format_mass(frosting_grams),
        "stock_display": format_mass(stock_grams),
    }


def tier_summary(tier) -> dict:
    """One tier line: who, what size, how much frosting."""
    return {
        "tier_id": tier.tier_id,
        "order_id": tier.order_id,
        "customer": tier.customer_name,
        "tier_index": tier.tier_index,
        "size": tier.size_name,
        "servings": quantities.servings(tier),
        "surface_area": round(quantities.surface_area(tier), 2),
        "frosting": format_mass(quantities.frosting_mass(tier)),
        "finish": tier.finish_type,
        "due_date": _date(tier.due_date),
        "fulfillment": tier.fulfillment,
    }


def stock_task_summary(task) -> dict:
    return {
        "task_id": task.task_id,
        "item": task.item_name,
        "quantity": str(task.target_quantity),
        "mass": format_mass(quantities.stock_task_mass(task)),
        "due_date": _date(task.due_date),
    }


def present_group(group) -> dict:
    """Candidate group as shown in the planning list."""
    return {
        "key": group.key,
        "batch_type": group.batch_type,
        "recipe_name": group.recipe_name,
        "recipe_key": group.recipe_key,
        "recipe_id": group.recipe_id,
        "earliest_due_date": _date(group.earliest_due_date),
        "total_tiers": group.total_tiers,
        "total_servings": group.total_servings,
        "total_surface_area": round(group.total_surface_area, 2),
        "estimated_labor_hours": group.estimated_labor_hours,
        **_masses(group.total_frosting_grams, group.total_stock_grams),
        "tiers": [tier_summary(t) for t in group.tiers],
        "stock_tasks": [stock_task_summary(t) for t in group.stock_tasks],
    }


def present_suggestion(suggestion) -> dict:
    return {
        "ref": suggestion.ref,
        "batch_id": suggestion.batch_id,
        "batch_type": suggestion.batch_type,
        "recipe_name": suggestion.recipe_name,
        "recipe_key": suggestion.recipe_key,
        "current_date": _date(suggestion.current_date),
        "suggested_date": _date(suggestion.suggested_date),
        "earliest_due_date": _date(suggestion.earliest_due_date),
        "lead_time_days": suggestion.lead_time_days,
        "reason": suggestion.reason,
        "needs_change": suggestion.needs_change,
        "dependencies": list(suggestion.dependencies),
        "missing_dependencies": [
            {
                "batch_type": dep.batch_type,
                "suggested_date": _date(dep.suggested_date),
                "lead_time_days": dep.lead_time_days,
            }
            for dep in suggestion.missing_dependencies
        ],
        "warnings": list(suggestion.warnings),
        "tier_ids": list(suggestion.tier_ids),
        "stock_task_ids": list(suggestion.stock_task_ids),
    }


def present_batch(batch, detail: bool = False) -> dict:
    """
    Persisted batch. With detail=True the member tiers and stock tasks
    are listed too.
    """
    data = {
        "id": batch.pk,
        "uuid": str(batch.uuid),
        "code": batch.code,
        "name": batch.name,
        "batch_type": batch.batch_type,
        "recipe_name": batch.recipe_name,
        "recipe_key": batch.recipe_key,
        "status": batch.status,
        "scheduled_date": _date(batch.scheduled_date),
        "end_date": _date(batch.end_date),
        "duration_days": batch.duration_days,
        "assigned_to": batch.assigned_to_id,
        "total_tiers": batch.total_tiers,
        "total_servings": batch.total_servings,
        "total_surface_area": float(batch.total_surface_area),
        **_masses(batch.total_frosting_grams, batch.total_stock_grams),
        "notes": batch.notes,
        "tier_ids": batch.tier_ids,
        "stock_task_ids": batch.stock_task_ids,
    }
    if detail:
        tiers = batch.member_tier_snapshots()
        data["due_date"] = _date(batch.due_date)
        data["estimated_labor_hours"] = quantities.estimated_labor_hours(tiers)
        data["tiers"] = [tier_summary(t) for t in tiers]
        data["stock_tasks"] = [stock_task_summary(t) for t in batch.member_stock_snapshots()]
    return data


def present_batch_type(info) -> dict:
    return {
        "code": info.code,
        "name": info.name,
        "description": info.description,
        "lead_time_days": info.lead_time_days,
        "depends_on": list(info.depends_on),
        "is_batchable": info.is_batchable,
        "color": info.color,
        "sort_order": info.sort_order,
    }
