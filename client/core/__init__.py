from .connector import connect, parse_address
from .network import Client, TargetAdapter

__all__ = ["Client", "TargetAdapter", "connect", "parse_address"]
