"""
Recipe identity strategies.

Batches are keyed by (batch type, recipe identity). What counts as "the
same recipe" is a policy decision, so it lives behind a swappable
strategy selected by ``BATCHMAN["RECIPE_IDENTITY"]``:

- ResolvedNameIdentity (default): two tiers bake the same thing when their
  resolved names match, even if they point at different recipe rows.
- RecipeIdIdentity: stricter, recipe rows are distinct even when their
  names collide. Free-text fallbacks still compare by name.
"""

from batchman.protocols.providers import RecipeRef


def normalize_name(name: str) -> str:
    """Collapse surrounding and repeated whitespace; case is significant."""
    return " ".join((name or "").split())


class RecipeIdentity:
    """Base strategy. Subclasses implement key()."""

    def key(self, ref: RecipeRef) -> str:
        raise NotImplementedError

    def equals(self, a: RecipeRef, b: RecipeRef) -> bool:
        return self.key(a) == self.key(b)


class ResolvedNameIdentity(RecipeIdentity):
    """Identity by resolved display name."""

    def key(self, ref: RecipeRef) -> str:
        return normalize_name(ref.name)


class RecipeIdIdentity(RecipeIdentity):
    """Identity by recipe id, falling back to name for free-text recipes."""

    def key(self, ref: RecipeRef) -> str:
        if ref.id is not None:
            return f"recipe:{ref.id}"
        return normalize_name(ref.name)
