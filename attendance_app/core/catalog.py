"""Static catalog of modules offered per academic year.

The catalog is configuration, not remote data: :data:`DEFAULT_CATALOG` holds
the built-in table and :func:`parse_catalog` accepts an override from the
settings file.

Example::

    >>> [m.id for m in modules_for_year("4")][:2]
    ['General_&_special_internal_1', 'General_&_special_internal_2']
    >>> modules_for_year("9")
    []
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

__all__ = [
    "ModuleDescriptor",
    "ModuleCatalog",
    "DEFAULT_CATALOG",
    "parse_catalog",
    "modules_for_year",
    "find_module",
]


@dataclass(frozen=True)
class ModuleDescriptor:
    """One selectable module: id used in file names plus display name."""

    id: str
    name: str


ModuleCatalog = Mapping[str, tuple[ModuleDescriptor, ...]]


def _modules(*pairs: tuple[str, str]) -> tuple[ModuleDescriptor, ...]:
    return tuple(ModuleDescriptor(id=module_id, name=name) for module_id, name in pairs)


DEFAULT_CATALOG: ModuleCatalog = MappingProxyType(
    {
        "1": _modules(
            ("Introduction_to_Anatomy", "Introduction to Anatomy"),
            ("Introduction_to_Histology", "Introduction to Histology"),
            ("Introduction_to_Biochemistry", "Introduction to Biochemistry"),
            ("Introduction_to_Physiology", "Introduction to Physiology"),
            ("Immunology", "Immunology"),
            ("Genetics", "Genetics"),
            ("Introduction_to_Pathology", "Introduction to Pathology"),
            ("Introduction_to_Pharmacology", "Introduction to Pharmacology"),
            ("Infection", "Infection"),
            ("Locomotor", "Locomotor"),
        ),
        "2": _modules(
            ("Blood_&_lymphatics", "Blood & Lymphatics"),
            ("Respiratory", "Respiratory"),
            ("CVS", "CVS"),
            ("CNS", "CNS"),
            ("Special_senses", "Special Senses"),
            ("Endocrine_&_Metabolism", "Endocrine & Metabolism"),
        ),
        "3": _modules(
            ("GIT_&_Liver", "GIT & Liver"),
            ("Urogenital", "Urogenital"),
            ("Foundation_of_internal", "Foundation of Internal"),
            ("ENT", "ENT"),
            ("Community_&_Occupational", "Community & Occupational"),
            ("Forensics_&_Toxicology", "Forensics & Toxicology"),
        ),
        "4": _modules(
            ("General_&_special_internal_1", "General & Special Internal 1"),
            ("General_&_special_internal_2", "General & Special Internal 2"),
            ("Family_Medicine", "Family Medicine"),
            ("Pediatrics", "Pediatrics"),
        ),
        "5": _modules(
            ("Ophthalmology", "Ophthalmology"),
            ("General_&_Special_surgery_1", "General & Special Surgery 1"),
            ("General_&_Special_surgery_2", "General & Special Surgery 2"),
            ("Emergency_&_trauma_1", "Emergency & Trauma 1"),
            ("Emergency_&_trauma_2", "Emergency & Trauma 2"),
            ("Obstetrics_&_gynecology", "Obstetrics & Gynecology"),
        ),
    }
)


def _to_descriptor(year: str, item: object) -> ModuleDescriptor:
    if isinstance(item, Mapping):
        module_id = str(item.get("id", "")).strip()
        name = str(item.get("name", "") or module_id).strip()
    elif isinstance(item, str):
        module_id = item.strip()
        name = module_id.replace("_", " ")
    else:
        raise ValueError(f"modules[{year}] entries must be objects or strings, got {type(item).__name__}")
    if not module_id:
        raise ValueError(f"modules[{year}] contains an entry without id")
    return ModuleDescriptor(id=module_id, name=name)


def parse_catalog(raw: Mapping[str, object]) -> ModuleCatalog:
    """Normalize a ``{year: [{id, name}, ...]}`` mapping into a catalog.

    Raises:
        ValueError: if a year does not map to a list or an entry lacks an id.
    """

    catalog: dict[str, tuple[ModuleDescriptor, ...]] = {}
    for year, items in raw.items():
        year_key = str(year).strip()
        if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
            raise ValueError(f"modules[{year_key}] must be a list")
        catalog[year_key] = tuple(_to_descriptor(year_key, item) for item in items)
    return MappingProxyType(catalog)


def modules_for_year(year: str, catalog: ModuleCatalog = DEFAULT_CATALOG) -> list[ModuleDescriptor]:
    """Ordered modules of ``year``; empty list for unknown years."""

    return list(catalog.get(str(year).strip(), ()))


def find_module(year: str, module_id: str, catalog: ModuleCatalog = DEFAULT_CATALOG) -> ModuleDescriptor | None:
    for module in modules_for_year(year, catalog):
        if module.id == module_id:
            return module
    return None
