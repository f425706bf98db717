"""
Recipe model.

Minimal recipe reference used as the grouping key for batches.
Costing and ingredient math live with the host application.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from batchman.protocols.providers import RecipeRef


class RecipeKind(models.TextChoices):
    """What the recipe produces."""

    BATTER = "batter", _("Batter")
    FILLING = "filling", _("Filling")
    FROSTING = "frosting", _("Frosting")
    FINISH = "finish", _("Finish")


class Recipe(models.Model):
    """
    Production recipe.

    Batter recipes are baked (BAKE batches); fillings and frostings are
    made ahead (PREP batches).
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_("Code"),
        help_text=_("Unique identifier (e.g. vanilla-sponge)"),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_("Name"),
    )
    kind = models.CharField(
        max_length=20,
        choices=RecipeKind.choices,
        default=RecipeKind.BATTER,
        verbose_name=_("Kind"),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("Active"),
    )
    notes = models.TextField(
        blank=True,
        verbose_name=_("Notes"),
    )

    class Meta:
        db_table = "batchman_recipe"
        verbose_name = _("Recipe")
        verbose_name_plural = _("Recipes")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def as_ref(self) -> RecipeRef:
        return RecipeRef(name=self.name, id=self.pk, kind=self.kind)
