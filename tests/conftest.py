"""
Test fixtures and configuration.
"""

from typing import Any

import pytest

from txflow.models import Outspend, TransactionRecord

TXID_A = "a" * 64
TXID_B = "b" * 64
TXID_C = "c" * 64
TXID_D = "d" * 64


def make_tx(
    txid: str,
    inputs: list[int | None],
    outputs: list[int],
    fee: int | None = None,
) -> TransactionRecord:
    """Build a record from plain values; None marks an input without prevout."""
    vin: list[dict[str, Any]] = []
    for n, value in enumerate(inputs):
        if value is None:
            vin.append({"txid": "0" * 64, "vout": 4294967295, "prevout": None, "is_coinbase": True})
        else:
            vin.append(
                {
                    "txid": f"{n:064x}",
                    "vout": n,
                    "prevout": {
                        "value": value,
                        "scriptpubkey_address": f"bc1qinput{n}xxxxxxxxxxxxxxxxxxxx",
                        "scriptpubkey_type": "v0_p2wpkh",
                    },
                }
            )
    vout = [
        {
            "value": value,
            "scriptpubkey_address": f"bc1qoutput{n}xxxxxxxxxxxxxxxxxxx",
            "scriptpubkey_type": "v1_p2tr",
        }
        for n, value in enumerate(outputs)
    ]
    return TransactionRecord.model_validate({"txid": txid, "vin": vin, "vout": vout, "fee": fee})


def spent(*spenders: str | None) -> tuple[Outspend, ...]:
    """Outspends where a txid marks a spent output and None an unspent one."""
    return tuple(
        Outspend(spent=True, spending_txid=s) if s else Outspend(spent=False) for s in spenders
    )


@pytest.fixture
def sample_record() -> TransactionRecord:
    """One 5000 sat input paying 3000 and 1000 with a 1000 sat fee."""
    return make_tx(TXID_A, [5000], [3000, 1000], fee=1000)


@pytest.fixture
def esplora_tx() -> dict[str, Any]:
    return {
        "txid": TXID_A,
        "version": 2,
        "locktime": 0,
        "vin": [
            {
                "txid": "1" * 64,
                "vout": 0,
                "prevout": {
                    "scriptpubkey": "0014" + "ab" * 20,
                    "scriptpubkey_type": "v0_p2wpkh",
                    "scriptpubkey_address": "bc1q4w46h2at4w46h2at4w46h2at4w46h2at25y74s",
                    "value": 5000,
                },
                "scriptsig": "",
                "witness": ["30", "02"],
                "is_coinbase": False,
                "sequence": 4294967293,
            }
        ],
        "vout": [
            {
                "scriptpubkey": "0014" + "cd" * 20,
                "scriptpubkey_type": "v0_p2wpkh",
                "scriptpubkey_address": "bc1qehxumnwdehxumnwdehxumnwdehxumnwdz9q6f8",
                "value": 3000,
            },
            {
                "scriptpubkey": "5120" + "ef" * 32,
                "scriptpubkey_type": "v1_p2tr",
                "scriptpubkey_address": "bc1pa7hmmmhhhmmmmhhhmmmmhhhmmmmhhhmmmmhhhmmmmhhhmmmmhhqq3",
                "value": 1000,
            },
        ],
        "size": 222,
        "weight": 561,
        "fee": 1000,
        "status": {"confirmed": True, "block_height": 800000},
    }
