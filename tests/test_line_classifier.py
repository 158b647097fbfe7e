from decimal import Decimal

from fbr_engine.schemas.ledger import RawLedgerLine
from fbr_engine.services.rules.line_classifier import LineLabel, classify_document, classify_line


def _line(
    idx: int,
    amount: str,
    *,
    ref: str = "ITEM-1",
    item_type: str = "Widget",
    description: str = "",
    quantity: str | None = "1",
) -> RawLedgerLine:
    return RawLedgerLine(
        sequence_index=idx,
        item_reference=ref,
        item_type=item_type,
        description=description,
        quantity=quantity,
        amount=amount,
    )


def test_negative_amount_is_discount() -> None:
    assert classify_line(_line(0, "-50", item_type="Adjustment")) is LineLabel.DISCOUNT


def test_discount_marker_is_case_insensitive() -> None:
    line = _line(0, "25", item_type="", description="Special DISCOUNT for loyal customer")
    assert classify_line(line) is LineLabel.DISCOUNT


def test_discount_marker_wins_over_subtotal_marker() -> None:
    line = _line(0, "-10", ref="", item_type="Subtotal discount", quantity=None)
    assert classify_line(line) is LineLabel.DISCOUNT


def test_subtotal_markers() -> None:
    assert classify_line(_line(0, "600", ref="", item_type="Subtotal", quantity=None)) is LineLabel.SUBTOTAL
    assert classify_line(_line(1, "600", ref="SUB", item_type="", description="Sub-Total")) is LineLabel.SUBTOTAL


def test_line_without_reference_or_quantity_is_computed_subtotal() -> None:
    assert classify_line(_line(0, "600", ref="", item_type="", quantity=None)) is LineLabel.SUBTOTAL
    assert classify_line(_line(1, "600", ref="0", item_type="Total", quantity="0")) is LineLabel.SUBTOTAL


def test_regular_item() -> None:
    assert classify_line(_line(0, "100")) is LineLabel.ITEM
    # A referenced line without quantity is still an item.
    assert classify_line(_line(1, "100", quantity=None)) is LineLabel.ITEM


def test_classify_document_orders_and_excludes() -> None:
    lines = [
        _line(2, "300", ref="ITEM-3"),
        _line(0, "100", ref="ITEM-1"),
        _line(1, "999", ref="", item_type="", quantity="2"),
        _line(3, "-40", ref="DISC", item_type="Discount"),
    ]

    contexts = classify_document(lines)

    assert [ctx.index for ctx in contexts] == [0, 2, 3]
    assert [ctx.label for ctx in contexts] == [LineLabel.ITEM, LineLabel.ITEM, LineLabel.DISCOUNT]
    assert all(ctx.attributed_discount == Decimal("0") for ctx in contexts)


def test_classification_is_repeatable() -> None:
    lines = [
        _line(0, "100"),
        _line(1, "100", ref="", item_type="Subtotal", quantity=None),
        _line(2, "-10", item_type="Discount"),
    ]

    first = [ctx.label for ctx in classify_document(lines)]
    second = [ctx.label for ctx in classify_document(lines)]

    assert first == second == [LineLabel.ITEM, LineLabel.SUBTOTAL, LineLabel.DISCOUNT]
