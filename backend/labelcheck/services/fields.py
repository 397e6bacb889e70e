"""Field comparator registry.

Lists, per beverage type, which label fields are compared, the score each
field needs for a partial match, and which comparator scores it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, List, Tuple, Union

from ..models.schemas import BeverageType, FieldKey
from .matching import compare_alcohol_content, compare_net_contents, similarity_score


Comparator = Callable[[str, str], int]


class ComparatorKind(str, Enum):
    """Which scoring function applies to a field."""
    FUZZY = "fuzzy"
    ALCOHOL_CONTENT = "alcohol_content"
    NET_CONTENTS = "net_contents"


COMPARATORS = {
    ComparatorKind.FUZZY: similarity_score,
    ComparatorKind.ALCOHOL_CONTENT: compare_alcohol_content,
    ComparatorKind.NET_CONTENTS: compare_net_contents,
}

ALL_BEVERAGE_TYPES: FrozenSet[BeverageType] = frozenset(BeverageType)


class UnknownBeverageTypeError(ValueError):
    """Raised when fields are requested for a beverage type with no registry entry."""


@dataclass(frozen=True)
class FieldDefinition:
    """How one label field is compared."""
    key: FieldKey
    display_name: str
    threshold: int  # Minimum score for partial_match
    comparator_kind: ComparatorKind = ComparatorKind.FUZZY
    applies_to: FrozenSet[BeverageType] = ALL_BEVERAGE_TYPES

    def applies(self, beverage_type: BeverageType) -> bool:
        return beverage_type in self.applies_to

    @property
    def comparator(self) -> Comparator:
        return COMPARATORS[self.comparator_kind]


# Registry order is the order comparisons are reported in
FIELD_DEFINITIONS: Tuple[FieldDefinition, ...] = (
    FieldDefinition(FieldKey.BRAND_NAME, "Brand Name", 85),
    FieldDefinition(FieldKey.CLASS_TYPE_DESIGNATION, "Class/Type", 80),
    FieldDefinition(FieldKey.ALCOHOL_CONTENT, "Alcohol Content", 100, ComparatorKind.ALCOHOL_CONTENT),
    FieldDefinition(FieldKey.NET_CONTENTS, "Net Contents", 100, ComparatorKind.NET_CONTENTS),
    FieldDefinition(FieldKey.PRODUCER_NAME, "Producer/Bottler Name", 80),
    FieldDefinition(FieldKey.PRODUCER_ADDRESS, "Producer/Bottler Address", 75),
    FieldDefinition(FieldKey.COUNTRY_OF_ORIGIN, "Country of Origin", 90),
    FieldDefinition(
        FieldKey.APPELLATION, "Appellation of Origin", 85,
        applies_to=frozenset({BeverageType.WINE}),
    ),
    FieldDefinition(
        FieldKey.VINTAGE_YEAR, "Vintage Year", 100,
        applies_to=frozenset({BeverageType.WINE}),
    ),
)


def get_field_definitions(beverage_type: Union[BeverageType, str]) -> List[FieldDefinition]:
    """
    Get the fields to compare for a beverage type, in report order.

    Raises:
        UnknownBeverageTypeError: If the beverage type is not registered
    """
    try:
        beverage_type = BeverageType(beverage_type)
    except ValueError:
        raise UnknownBeverageTypeError(f"Unknown beverage type: {beverage_type!r}") from None

    return [definition for definition in FIELD_DEFINITIONS if definition.applies(beverage_type)]
