"""
Field-name resolution for the Airtable tables.

The Airtable schema grew by hand and the same logical field exists under
several spellings depending on when the column was created. Every lookup
goes through the candidate lists below so a rename is a one-line change.
"""
import json
from typing import Any, Dict, Iterable, Optional

from seodash.utils.logger import log

# Sites table
SITE_ID = ("ID_SITE", "id_site", "ID")
SITE_NAME = ("Nom_site", "nom", "Name", "name")
SITE_URL = ("url", "URL", "Url")
SITE_SOCIAL_PROGRAM = ("programme_rs", "Programme_RS", "programme RS")
SITE_SOCIAL_PARAMS = ("parametres_rs", "Parametres_RS", "social_params")
SITE_ANALYSIS = ("analyse_seo", "Analyse_SEO", "seo_analysis")

# Content table
CONTENT_SITE_ID = ("ID_SITE", "id_site")
CONTENT_TYPE = ("type_contenu", "Type_contenu")
CONTENT_TEXT = ("contenu_text", "Contenu_text")
CONTENT_ATTACHMENT = ("image", "Image")
CONTENT_IMAGE_URL = ("image_url", "Image_url", "imageUrl")
CONTENT_STATUS = ("statut", "Statut")
CONTENT_DATE = ("date_de_publication", "Date_de_publication")

# Prompts table
PROMPT_TEXT = ("prompt_system", "Prompt System", "promptSystem")
PROMPT_STRUCTURE = ("structure_sortie", "Structure Sortie", "structureSortie")
PROMPT_NAME = ("nom", "Name", "name")
PROMPT_DESCRIPTION = ("description", "Description")
PROMPT_ACTIVE = ("actif", "Active", "active")

# Field names used when writing. Reads accept every variant above.
WRITE_NAMES = {
    "site_id": "ID_SITE",
    "site_social_program": "programme_rs",
    "site_social_params": "parametres_rs",
    "site_analysis": "analyse_seo",
    "content_site_id": "ID_SITE",
    "content_type": "type_contenu",
    "content_text": "contenu_text",
    "content_attachment": "image",
    "content_image_url": "image_url",
    "content_status": "statut",
    "content_date": "date_de_publication",
    "prompt_text": "prompt_system",
    "prompt_structure": "structure_sortie",
    "prompt_name": "nom",
    "prompt_description": "description",
    "prompt_active": "actif",
}


def pick(fields: Dict[str, Any], candidates: Iterable[str], default: Any = None) -> Any:
    """Return the value of the first candidate key present in fields."""
    for key in candidates:
        if key in fields and fields[key] is not None:
            return fields[key]
    return default


def parse_json_field(raw: Any, label: str = "field") -> Optional[Any]:
    """
    Decode a JSON-encoded text field.

    Already-decoded values pass through. Malformed JSON is logged and
    reported as None rather than raised.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, (dict, list)):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        log.warning(f"Malformed JSON in {label}: {e}")
        return None


def parse_positive_int(raw: Any) -> Optional[int]:
    """Parse a numeric id; anything that isn't a positive integer is None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        if not raw.is_integer():
            return None
        raw = int(raw)
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None
