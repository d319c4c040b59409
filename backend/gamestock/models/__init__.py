from .catalog import Game, VARIANTS, VARIANT_WITH_CASE, VARIANT_CARTRIDGE_ONLY, DEFAULT_VARIANT
from .acquisitions import Acquisition, AcquisitionLine
from .sales import Sale, SaleLine
from .trades import Trade, TradeLine, ROLE_GIVEN, ROLE_RECEIVED
from .documents import LedgerEvent, DocumentSequence

__all__ = [
    'Game', 'VARIANTS', 'VARIANT_WITH_CASE', 'VARIANT_CARTRIDGE_ONLY', 'DEFAULT_VARIANT',
    'Acquisition', 'AcquisitionLine',
    'Sale', 'SaleLine',
    'Trade', 'TradeLine', 'ROLE_GIVEN', 'ROLE_RECEIVED',
    'LedgerEvent', 'DocumentSequence',
]
