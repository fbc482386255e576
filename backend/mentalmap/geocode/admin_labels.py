"""Per-country names for the administrative levels shown in the tooltip.

Maps ISO 3166-1 alpha-2 codes (lower case) to the local terms for the
region level and the department level. The commune level is always
"Gemeinde". An empty entry falls back to the generic label.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_REGION_LABEL = "Region"
DEFAULT_DEPT_LABEL = "Gebiet"
COMMUNE_LABEL = "Gemeinde"

# Countries whose department level is never shown
HIDDEN_DEPT_COUNTRIES = frozenset({"nl"})

# country code → (region label, department label)
ADMIN_LABELS: dict[str, tuple[str, str]] = {
    "de": ("Bundesland", "Landkreis"),
    "at": ("Bundesland", "Bezirk"),
    "ch": ("Kanton", "Bezirk"),
    "fr": ("Region", "Département"),
    "be": ("Region", "Provinz"),
    "nl": ("Provinz", "Gemeinde"),
    "lu": ("Kanton", "Gemeinde"),
    "ie": ("Provinz", "County"),
    "gb": ("Region", "Grafschaft"),
    "uk": ("Region", "Grafschaft"),
    "it": ("Region", "Provinz"),
    "es": ("Region", "Provinz"),
    "pt": ("Distrikt", "Kreis"),
    "gr": ("Region", "Regionalbezirk"),
    "mt": ("Region", "Distrikt"),
    "cy": ("Bezirk", "Gemeinde"),
    "ad": ("Gemeinde", ""),
    "sm": ("Gemeinde", ""),
    "va": ("", ""),
    "mc": ("Quartier", ""),
    "dk": ("Region", "Kommune"),
    "se": ("Provinz", "Gemeinde"),
    "no": ("Provinz", "Gemeinde"),
    "fi": ("Landschaft", "Gemeinde"),
    "is": ("Region", "Gemeinde"),
    "pl": ("Woiwodschaft", "Kreis"),
    "cz": ("Region", "Bezirk"),
    "sk": ("Landschaftsverband", "Bezirk"),
    "hu": ("Komitat", "Kreis"),
    "ro": ("Kreis", "Gemeinde"),
    "bg": ("Oblast", "Gemeinde"),
    "hr": ("Gespanschaft", "Gemeinde"),
    "si": ("Region", "Gemeinde"),
    "ee": ("Landkreis", "Gemeinde"),
    "lv": ("Bezirk", "Gemeinde"),
    "lt": ("Bezirk", "Gemeinde"),
    "ua": ("Oblast", "Rajon"),
    "by": ("Woblast", "Rajon"),
    "md": ("Rajon", ""),
    "rs": ("Bezirk", "Gemeinde"),
    "ba": ("Kanton", "Gemeinde"),
    "mk": ("Region", "Gemeinde"),
    "al": ("Qark", "Gemeinde"),
    "xk": ("Bezirk", "Gemeinde"),
    "me": ("Gemeinde", ""),
    "ru": ("Oblast", "Rajon"),
    "li": ("Oberland/Unterland", "Gemeinde"),
    "us": ("Bundesstaat", "County"),
    "ca": ("Provinz", "County"),
    "mx": ("Bundesstaat", "Gemeinde"),
    "gt": ("Departement", "Gemeinde"),
    "bz": ("Distrikt", "Wahlkreis"),
    "sv": ("Departement", "Gemeinde"),
    "hn": ("Departement", "Gemeinde"),
    "ni": ("Departement", "Gemeinde"),
    "cr": ("Provinz", "Kanton"),
    "pa": ("Provinz", "Distrikt"),
    "cu": ("Provinz", "Gemeinde"),
    "ht": ("Departement", "Arrondissement"),
    "do": ("Provinz", "Gemeinde"),
    "jm": ("Parish", ""),
    "tt": ("Region", ""),
    "bs": ("Distrikt", ""),
    "bb": ("Parish", ""),
    "br": ("Bundesstaat", "Gemeinde"),
    "ar": ("Provinz", "Departement"),
    "cl": ("Region", "Provinz"),
    "co": ("Departement", "Gemeinde"),
    "pe": ("Region", "Provinz"),
    "ve": ("Bundesstaat", "Gemeinde"),
    "ec": ("Provinz", "Kanton"),
    "bo": ("Departement", "Provinz"),
    "py": ("Departement", "Distrikt"),
    "uy": ("Departement", ""),
    "gy": ("Region", ""),
    "sr": ("Distrikt", "Ressort"),
    "cn": ("Provinz", "Präfektur"),
    "jp": ("Präfektur", "Bezirk"),
    "in": ("Bundesstaat", "Distrikt"),
    "kr": ("Provinz", "Stadt/Landkreis"),
    "id": ("Provinz", "Regierungsbezirk"),
    "th": ("Provinz", "Amphoe"),
    "vn": ("Provinz", "Bezirk"),
    "my": ("Bundesstaat", "Distrikt"),
    "ph": ("Provinz", "Gemeinde"),
    "pk": ("Provinz", "Distrikt"),
    "bd": ("Division", "Distrikt"),
    "ir": ("Provinz", "Schahrestan"),
    "tr": ("Provinz", "Distrikt"),
    "sa": ("Provinz", "Gouvernement"),
    "il": ("Bezirk", ""),
    "ae": ("Emirat", ""),
    "qa": ("Gemeinde", ""),
    "kw": ("Gouvernement", ""),
    "om": ("Gouvernement", "Wilaya"),
    "kz": ("Gebiet", "Bezirk"),
    "uz": ("Provinz", "Bezirk"),
    "tm": ("Provinz", "Distrikt"),
    "kg": ("Gebiet", "Bezirk"),
    "tj": ("Provinz", "Distrikt"),
    "af": ("Provinz", "Distrikt"),
    "np": ("Provinz", "Distrikt"),
    "lk": ("Provinz", "Distrikt"),
    "mm": ("Region", "Distrikt"),
    "la": ("Provinz", "Distrikt"),
    "kh": ("Provinz", "Bezirk"),
    "mn": ("Provinz", "Sum"),
    "kp": ("Provinz", "Kreis"),
    "sy": ("Gouvernement", "Distrikt"),
    "jo": ("Gouvernement", ""),
    "lb": ("Gouvernement", "Distrikt"),
    "ye": ("Gouvernement", "Distrikt"),
    "iq": ("Gouvernement", "Distrikt"),
    "az": ("Bezirk", ""),
    "ge": ("Region", "Gemeinde"),
    "am": ("Provinz", "Gemeinde"),
    "tw": ("Landkreis", "Bezirk"),
    "sg": ("Distrikt", ""),
    "za": ("Provinz", "Distrikt"),
    "eg": ("Gouvernement", "Markaz"),
    "ng": ("Bundesstaat", "LGA"),
    "ke": ("County", "Sub-County"),
    "ma": ("Region", "Provinz"),
    "dz": ("Wilaya", "Daïra"),
    "tn": ("Gouvernement", "Delegation"),
    "gh": ("Region", "Distrikt"),
    "et": ("Region", "Zone"),
    "tz": ("Region", "Distrikt"),
    "ly": ("Gemeinde", ""),
    "sd": ("Bundesstaat", "Distrikt"),
    "ss": ("Bundesstaat", "County"),
    "ml": ("Region", "Kreis"),
    "sn": ("Region", "Departement"),
    "ci": ("Distrikt", "Region"),
    "cm": ("Region", "Departement"),
    "ao": ("Provinz", "Kreis"),
    "zm": ("Provinz", "Distrikt"),
    "zw": ("Provinz", "Distrikt"),
    "mz": ("Provinz", "Distrikt"),
    "mg": ("Region", "Distrikt"),
    "ne": ("Region", "Departement"),
    "bf": ("Region", "Provinz"),
    "cd": ("Provinz", "Territorium"),
    "cg": ("Departement", "Distrikt"),
    "ug": ("Distrikt", "County"),
    "rw": ("Provinz", "Distrikt"),
    "bi": ("Provinz", "Gemeinde"),
    "so": ("Region", "Distrikt"),
    "cf": ("Präfektur", "Unterpräfektur"),
    "td": ("Provinz", "Departement"),
    "mr": ("Region", "Departement"),
    "bw": ("Distrikt", ""),
    "na": ("Region", "Wahlkreis"),
    "ls": ("Distrikt", ""),
    "sz": ("Region", "Tinkhundla"),
    "au": ("Bundesstaat", "LGA"),
    "nz": ("Region", "Distrikt"),
    "pg": ("Provinz", "Distrikt"),
    "fj": ("Division", "Provinz"),
    "sb": ("Provinz", ""),
    "vu": ("Provinz", ""),
}


@dataclass(frozen=True)
class AdminLabels:
    region: str
    dept: str
    commune: str = COMMUNE_LABEL


def labels_for(country_code: str | None, table: dict[str, tuple[str, str]] | None = None) -> AdminLabels:
    """Labels for a country; unknown or missing codes get the generic terms."""
    table = ADMIN_LABELS if table is None else table
    cc = (country_code or "").lower()
    region, dept = DEFAULT_REGION_LABEL, DEFAULT_DEPT_LABEL
    entry = table.get(cc)
    if entry is not None:
        region = entry[0] or DEFAULT_REGION_LABEL
        dept = entry[1] or DEFAULT_DEPT_LABEL
        if cc in HIDDEN_DEPT_COUNTRIES:
            dept = ""
    return AdminLabels(region=region, dept=dept)
