"""
Tests for txflow.models
"""

import pytest
from conftest import TXID_A, TXID_B, make_tx
from pydantic import ValidationError

from txflow.models import Outspend, Point, TransactionRecord, TxInput, parse_outspends


def test_record_from_esplora(esplora_tx):
    record = TransactionRecord.model_validate(esplora_tx)

    assert record.txid == TXID_A
    assert len(record.vin) == 1
    assert record.vin[0].address.startswith("bc1q")
    assert record.vout[1].script_type == "v1_p2tr"
    assert record.has_fee
    assert list(record.values()) == [5000, 3000, 1000, 1000]
    assert record.max_value() == 5000


def test_record_txid_validated():
    with pytest.raises(ValidationError):
        TransactionRecord(txid="abc")


def test_record_txid_lowercased():
    assert TransactionRecord(txid="A" * 64).txid == TXID_A


def test_record_is_immutable(sample_record):
    with pytest.raises(ValidationError):
        sample_record.fee = 5


def test_coinbase_input_has_zero_value():
    tx_in = TxInput(is_coinbase=True)
    assert tx_in.value == 0
    assert tx_in.address is None
    assert tx_in.script_type is None


def test_fee_entity():
    assert make_tx(TXID_A, [10], [5], fee=5).fee_entity().value == 5
    assert make_tx(TXID_A, [10], [10], fee=0).fee_entity() is None
    assert make_tx(TXID_A, [10], [10]).fee_entity() is None


def test_values_without_inputs():
    record = make_tx(TXID_A, [], [])
    assert list(record.values()) == [0]
    assert record.max_value() == 0


def test_negative_output_rejected():
    with pytest.raises(ValidationError):
        TransactionRecord.model_validate({"txid": TXID_A, "vout": [{"value": -1}]})


def test_outspend_wire_alias():
    outspends = parse_outspends([{"spent": True, "txid": TXID_B, "vin": 2}, {"spent": False}])
    assert outspends[0] == Outspend(spent=True, spending_txid=TXID_B, vin=2)
    assert outspends[1].spending_txid is None


def test_point_arithmetic():
    p = Point(1, 2) + Point(3, -4)
    assert p == Point(4, -2)
    assert p - Point(4, 0) == Point(0, -2)
    assert p.scaled(0.5).as_tuple() == (2.0, -1.0)
