from importlib import resources
from pathlib import Path
from typing import List, Optional
import json

from rich.console import Console

from lunch_order_client.models import RestaurantWithMenu

def get_rich_console() -> Console: return Console(stderr=True)

def format_money(num) -> str:
    return f"${float(num or 0):.2f}"

def load_restaurants(path: Optional[Path] = None) -> List[RestaurantWithMenu]:
    """
    Читает справочник ресторанов из JSON: [{id, name, address, dishes: [{id, name, price}]}].
    Без пути берётся встроенный пример.
    """
    if path is None:
        raw = resources.files("lunch_order_client.data").joinpath("restaurants.json").read_text(encoding="utf-8")
    else:
        raw = Path(path).read_text(encoding="utf-8")
    return [RestaurantWithMenu.model_validate(item) for item in json.loads(raw)]
