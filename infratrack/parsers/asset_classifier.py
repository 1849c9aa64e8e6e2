"""
Asset Classifier Module

Maps free-text labels (English or Arabic, abbreviations included) to a
PointKind. Rules are ordered keyword tables evaluated per network context:

    SEWAGE  -> sewage rules, generic connection terms, else MANHOLE
    WATER   -> water rules, else VALVE
    MIXED   -> sewage rules, water rules, "MH" abbreviations, else VALVE

A strict context never yields a kind from the other network, so a "Valve"
label inside a sewage-only import is filed as a MANHOLE.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..config.models import NetworkContext, NetworkType, PointKind
from ..config.settings import get_settings


@dataclass(frozen=True)
class KeywordRule:
    """Label containing any keyword resolves to kind."""
    kind: PointKind
    keywords: Tuple[str, ...]

    def matches(self, label: str) -> bool:
        return any(keyword in label for keyword in self.keywords)


SEWAGE_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(PointKind.INSPECTION_CHAMBER, ('INSPECTION', 'CHAMBER', 'تفتيش')),
    KeywordRule(PointKind.OIL_TRAP, ('TRAP', 'OIL', 'مصيدة', 'زيوت')),
    KeywordRule(PointKind.SEWAGE_HOUSE_CONNECTION, ('SEWAGE HOUSE', 'SEWAGE CONN', 'صرف', 'منزلية صرف')),
    KeywordRule(PointKind.MANHOLE, ('MANHOLE', 'MAN', 'منهل', 'بالوعة')),
)

WATER_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(PointKind.ELBOW, ('ELBOW', 'BEND', 'كوع')),
    KeywordRule(PointKind.TEE, ('TEE', 'مشترك', 'T-PIECE')),
    KeywordRule(PointKind.SADDLE, ('SADDLE', 'CLAMP', 'STRAP', 'سرج')),
    KeywordRule(PointKind.REDUCER, ('REDUCER', 'MASLOOB', 'مسلوب')),
    KeywordRule(PointKind.AIR_VALVE, ('AIR', 'هواء')),
    KeywordRule(PointKind.WASH_VALVE, ('WASH', 'غسيل')),
    KeywordRule(PointKind.FIRE_HYDRANT, ('FIRE', 'HYDRANT', 'حريق')),
    KeywordRule(PointKind.WATER_HOUSE_CONNECTION, (
        'WATER HOUSE', 'WATER CONN', 'HOUSE', 'CONN', 'H.C', 'HC',
        'مياه', 'منزلية', 'منزليه', 'وصلة', 'وصله',
    )),
    KeywordRule(PointKind.VALVE, ('VALVE', 'VLV', 'محبس')),
)

# Generic connection wording, filed as sewage connections in sewage projects
SEWAGE_GENERIC_CONNECTION = KeywordRule(
    PointKind.SEWAGE_HOUSE_CONNECTION, ('HOUSE', 'CONN', 'HC', 'H.C'),
)

MANHOLE_ABBREVIATIONS = KeywordRule(PointKind.MANHOLE, ('MH', 'M.H'))

DEFAULT_KIND = {
    NetworkContext.SEWAGE: PointKind.MANHOLE,
    NetworkContext.WATER: PointKind.VALVE,
    NetworkContext.MIXED: PointKind.VALVE,
}


def normalize_label(label) -> str:
    """Upper-cased string form of a raw label (None becomes '')."""
    if label is None:
        return ''
    return str(label).strip().upper()


def first_match(label: str, rules: Iterable[KeywordRule]) -> Optional[PointKind]:
    """Kind of the first rule matching label, in table order."""
    for rule in rules:
        if rule.matches(label):
            return rule.kind
    return None


def rules_for(context: NetworkContext) -> Tuple[KeywordRule, ...]:
    """Full ordered rule table applied in a context (defaults excluded)."""
    if context is NetworkContext.SEWAGE:
        return SEWAGE_RULES + (SEWAGE_GENERIC_CONNECTION,)
    if context is NetworkContext.WATER:
        return WATER_RULES
    return SEWAGE_RULES + WATER_RULES + (MANHOLE_ABBREVIATIONS,)


def classify_point(label, context=NetworkContext.MIXED) -> PointKind:
    """
    Classify a point label.

    Args:
        label: Raw label (type column, name, description...), may be empty
        context: NetworkContext, NetworkType or name

    Returns:
        PointKind
    """
    context = NetworkContext.parse(context)
    value = normalize_label(label)
    kind = first_match(value, rules_for(context))
    return kind or DEFAULT_KIND[context]


def detect_segment_network(label, context=NetworkContext.MIXED) -> NetworkType:
    """
    Network type of a segment.

    Strict contexts decide on their own. In MIXED context a label (type and
    name joined) containing a sewage keyword gives SEWAGE, anything else WATER.
    """
    context = NetworkContext.parse(context)
    if context.network_type is not None:
        return context.network_type

    value = normalize_label(label)
    keywords = get_settings().imports.sewage_segment_keywords
    if any(keyword.upper() in value for keyword in keywords):
        return NetworkType.SEWAGE
    return NetworkType.WATER
