"""Ledger layer initialization"""
from .utxo import UTXO, UTXOPool
from .transaction import Input, Output, Transaction
from .handler import TxHandler, RejectReason, ScanOrder
from .logger import Logger
from .config import load_config, DEFAULT_CONFIG

__all__ = ['UTXO', 'UTXOPool', 'Input', 'Output', 'Transaction',
           'TxHandler', 'RejectReason', 'ScanOrder', 'Logger',
           'load_config', 'DEFAULT_CONFIG']
