import pytest

from lunch_order_client.core import LocalSelection
from lunch_order_client.exceptions import ValidationError
from lunch_order_client.models import Dish


def test_deltas_against_saved():
    selection = LocalSelection({"d1": 3, "d2": 0, "d3": 1})
    assert selection.deltas_against({"d1": 1, "d2": 2, "d3": 1}) == {"d1": 2, "d2": -2}


def test_negative_quantity_clamped_to_zero():
    selection = LocalSelection()
    selection.set_qty("d1", -4)
    assert selection.as_dict() == {"d1": 0}


def test_total_price_and_reset():
    selection = LocalSelection({"d1": 2, "d2": 1, "unknown": 5})
    catalog = [Dish(id="d1", name="A", price=5.5), Dish(id="d2", name="B", price=2.0)]
    assert selection.total_price(catalog) == pytest.approx(13.0)
    selection.reset()
    assert not selection
    assert selection.as_dict() == {}


@pytest.mark.parametrize("qty", [1.5, "2", True])
def test_rejects_non_integer_quantity(qty):
    with pytest.raises(ValidationError):
        LocalSelection().set_qty("d1", qty)
