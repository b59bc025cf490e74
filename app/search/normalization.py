"""Normalisation des lignes brutes asyncpg vers les modèles de réponse."""
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from app.config import settings
from app.models import SaleRow, StoreRow, StoreSummary

JSON_COLUMNS = ("store", "aiMetadata", "openingHours")


def split_images(value: Any, delimiter: Optional[str] = None) -> List[str]:
    """
    Convertit la colonne images ("a,b,c") en liste ordonnée.

    Une valeur vide ou absente donne []. Les segments sont gardés tels quels,
    vides compris ("a,,b" -> ["a", "", "b"]). Une liste déjà décodée est conservée.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    delimiter = delimiter or settings.IMAGES_DELIMITER
    return str(value).split(delimiter)


def decode_json(value: Any) -> Any:
    """asyncpg renvoie json/jsonb sous forme de texte sans codec dédié."""
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def _clean(row: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, Decimal):
            value = float(value)
        elif key in JSON_COLUMNS:
            value = decode_json(value)
        cleaned[key] = value
    return cleaned


def store_summary(value: Any) -> Optional[StoreSummary]:
    """Résumé du magasin, ou None si la jointure n'a rien trouvé."""
    data = decode_json(value)
    if not isinstance(data, dict) or data.get("id") is None:
        return None
    return StoreSummary.model_validate(_clean(data))


def to_sale_row(row: Dict[str, Any], with_distance: bool = True) -> SaleRow:
    data = _clean(row)
    data["images"] = split_images(data.get("images"))
    data["store"] = store_summary(data.get("store"))
    if not with_distance:
        data["distance"] = None
    return SaleRow.model_validate(data)


def to_store_row(row: Dict[str, Any], with_distance: bool = True) -> StoreRow:
    data = _clean(row)
    if not with_distance:
        data["distance"] = None
    return StoreRow.model_validate(data)
