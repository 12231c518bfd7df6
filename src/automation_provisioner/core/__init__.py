"""Core components: addressing, value codec, Azure client, state."""

from automation_provisioner.core.client import RemoteVariableRecord, VariableClient
from automation_provisioner.core.codec import ValueKind, codec_for, decode_value, encode_value
from automation_provisioner.core.identity import (
    VariableIdentity,
    parse_canonical,
    resolve_for_write,
)
from automation_provisioner.core.provider import AutomationProvider, ClientSecretAuth
from automation_provisioner.core.state import ResourceInstance, State

__all__ = [
    "AutomationProvider",
    "ClientSecretAuth",
    "RemoteVariableRecord",
    "ResourceInstance",
    "State",
    "ValueKind",
    "VariableClient",
    "VariableIdentity",
    "codec_for",
    "decode_value",
    "encode_value",
    "parse_canonical",
    "resolve_for_write",
]
