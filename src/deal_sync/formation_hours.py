"""
Recommended duration (hours) for a training, inferred from its label.

Resolution order, first hit wins:
    1. exact lookup of the normalised label in the catalog
    2. the ordered keyword rules (order is significant)
    3. a number followed by an hour unit in the raw label ("3,5 h", "8 horas")
    4. None: unknown, which callers must not read as zero
"""

import re
import unicodedata
from collections.abc import Iterable
from types import MappingProxyType


def normalize_formation_label(value: str) -> str:
    """Strip diacritics, lowercase, collapse non-alphanumerics to single spaces."""
    decomposed = unicodedata.normalize('NFD', value)
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r'[^a-z0-9]+', ' ', stripped.lower()).strip()


_FORMATION_HOURS_ENTRIES: list[tuple[str, float]] = [
    ('Uso de extintores portátiles', 4),
    ('Formación uso de extintores', 4),
    ('Extintores y agentes extintores', 4),
    ('Formación básica contra incendios', 8),
    ('Formación avanzada contra incendios', 16),
    ('Formación reciclaje contra incendios', 4),
    ('Lucha contra incendios nivel básico', 8),
    ('Lucha contra incendios nivel medio', 12),
    ('Lucha contra incendios nivel avanzado', 16),
    ('Autoprotección y emergencias', 8),
    ('Plan de autoprotección', 12),
    ('Planes de autoprotección', 12),
    ('Simulacro de emergencia', 4),
    ('Simulacros de emergencia', 4),
    ('BIEs y mangueras', 4),
    ('Manejo de BIE', 4),
    ('Equipos de emergencia BIE', 4),
    ('Equipo de intervención', 8),
    ('Equipos de intervención', 8),
    ('ERA (equipo de respiración autónoma)', 8),
    ('Equipos de respiración autónoma', 8),
    ('Prácticas ERA', 6),
    ('Espacios confinados', 8),
    ('Trabajos en altura', 8),
    ('Rescate en altura', 12),
    ('Rescate vertical', 12),
    ('Rescate en espacios confinados', 12),
    ('Prevención de riesgos en altura', 6),
    ('Primeros auxilios', 6),
    ('Primeros auxilios avanzados', 8),
    ('Primeros auxilios y DEA', 8),
    ('Desfibrilador DEA', 4),
    ('Riesgo eléctrico', 6),
    ('Prevención de riesgos eléctricos', 6),
    ('Carretillas elevadoras', 8),
    ('Carretillas elevadoras y plataforma elevadora', 12),
    ('Plataformas elevadoras móviles de personal', 8),
    ('Grúa puente', 8),
    ('Operador de grúa puente', 8),
    ('Manipulación de mercancías peligrosas', 12),
    ('Materiales peligrosos', 12),
    ('Control de derrames de hidrocarburos', 8),
    ('Plan de evacuación', 4),
    ('Planes de evacuación', 4),
    ('Investigación de incendios', 8),
    ('Puesto de mando avanzado', 6),
    ('Comunicaciones de emergencia', 4),
    ('Incendios industriales', 12),
    ('Incendios forestales', 12),
    ('Uso de hidrantes', 4),
    ('Logística de emergencias', 6),
]

# Matched against the normalised label, in this order.
_PATTERN_RULES: list[tuple[re.Pattern[str], float]] = [
    (re.compile(r'\breciclaj'), 4),
    (re.compile(r'\bbasi(?:co|ca)\b'), 8),
    (re.compile(r'\bavanzad'), 16),
    (re.compile(r'\brefresc'), 4),
    (re.compile(r'\bintroductori'), 4),
    (re.compile(r'espacios?\s+confinad'), 8),
    (re.compile(r'altura'), 8),
    (re.compile(r'rescate'), 12),
    (re.compile(r'primeros?\s+auxilio'), 6),
    (re.compile(r'desfibrilador|dea'), 4),
    (re.compile(r'extintor'), 4),
    (re.compile(r'\bbie\b'), 4),
    (re.compile(r'manguer'), 4),
    # Shadows the next rule: free-text "plan de autoproteccion" resolves to 8.
    # The 12-hour plans are reached through the catalog only.
    (re.compile(r'autoproteccion'), 8),
    (re.compile(r'plan\s+de\s+autoproteccion'), 12),
    (re.compile(r'carretill'), 8),
    (re.compile(r'plataforma\s+elevadora'), 8),
    (re.compile(r'grua|puente\s+grua'), 8),
    (re.compile(r'material(es)?\s+peligros'), 12),
    (re.compile(r'riesg[oa]\s+electric'), 6),
    (re.compile(r'hidrante'), 4),
]

_HOURS_LABEL_PATTERN = re.compile(r'(\d+(?:[.,]\d+)?)\s*(?:h|horas?|hrs?)', re.IGNORECASE)

FORMATION_HOURS_CATALOG: MappingProxyType[str, float] = MappingProxyType(
    {normalize_formation_label(label): hours for label, hours in _FORMATION_HOURS_ENTRIES}
)


def extract_hours_from_text(value: str) -> float | None:
    """First "<number><hour unit>" in free text, comma or dot decimals."""
    match = _HOURS_LABEL_PATTERN.search(value)
    if not match:
        return None
    return float(match.group(1).replace(',', '.'))


def resolve_formation_recommended_hours(value: str | None) -> float | None:
    """Recommended hours for one training label, or None if unknown."""
    if not isinstance(value, str):
        return None

    normalized = normalize_formation_label(value)
    if not normalized:
        return None

    direct = FORMATION_HOURS_CATALOG.get(normalized)
    if direct is not None:
        return direct

    for pattern, hours in _PATTERN_RULES:
        if pattern.search(normalized):
            return hours

    return extract_hours_from_text(value)


def resolve_formation_recommended_hours_from_list(values: Iterable[str | None]) -> float | None:
    """First non-None resolution among several candidate labels."""
    for value in values:
        resolved = resolve_formation_recommended_hours(value)
        if resolved is not None:
            return resolved
    return None
