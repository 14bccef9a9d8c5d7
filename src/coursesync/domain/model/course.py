"""Courses and the pricing configuration requested for them."""

from __future__ import annotations

from dataclasses import dataclass, field

from coursesync.domain.model.enums import PricingType, SellingOption

type CourseId = int


@dataclass(eq=False, slots=True, kw_only=True)
class Course:
    """The owning entity.

    Pricing fields are edited elsewhere; ``cached_plan_ids`` is the only field
    this system writes, and it is a hint, never a source of truth.
    """

    id: CourseId
    title: str = ""
    pricing_type: PricingType = PricingType.FREE
    selling_option: SellingOption = SellingOption.ONE_TIME
    price: float | None = None
    cached_plan_ids: list[int] = field(default_factory=list[int])

    def pricing(self) -> PricingContext:
        return PricingContext(
            pricing_type=self.pricing_type,
            selling_option=self.selling_option,
            price=self.price,
            title=self.title,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class PricingContext:
    """Desired pricing configuration as supplied by a trigger."""

    pricing_type: PricingType
    selling_option: SellingOption
    price: float | None = None
    title: str | None = None

    @property
    def is_free(self) -> bool:
        return self.pricing_type is PricingType.FREE

    def merged_with(self, course: Course) -> PricingContext:
        """Fill values the trigger left out from the stored course."""

        return PricingContext(
            pricing_type=self.pricing_type,
            selling_option=self.selling_option,
            price=self.price if self.price is not None else course.price,
            title=self.title if self.title is not None else course.title,
        )
