from .fakes import FakeDerivation, FakeConnector, FakeIndexer, RecordingSleep
from .factories import mk_address, mk_identity, mk_record, mk_records, mk_raw_transfer

__all__ = [
    "FakeDerivation",
    "FakeConnector",
    "FakeIndexer",
    "RecordingSleep",
    "mk_address",
    "mk_identity",
    "mk_record",
    "mk_records",
    "mk_raw_transfer",
]
