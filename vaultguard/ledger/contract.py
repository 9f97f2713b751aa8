"""
Contract base class.

A contract is a Python object living at a ledger address. Its state lives in
ledger storage so that atomic scopes can roll it back, and the methods marked
with ``@external`` can be reached through ABI-encoded calldata, which is how
wallets call tokens and how relayed requests reach a module.
"""

import functools
from typing import Any, Dict, Hashable, List, Optional, Tuple

from eth_abi.exceptions import DecodingError

from ..constants import GENESIS_DEPLOYER
from ..crypto.address import short_address, to_checksum_address
from ..crypto.contract import (
    compute_function_selector,
    decode_function_args,
    parse_signature_types,
    split_function_call,
)
from ..exceptions import ContractCallError
from .events import Event


def external(signature: str):
    """Expose a method under an ABI function signature, e.g. ``"lock(address)"``."""
    def decorator(fn):
        fn.__abi_signature__ = signature
        return fn
    return decorator


def transaction(fn):
    """Run the method inside an atomic ledger scope."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self.ledger.atomic():
            return fn(self, *args, **kwargs)
    return wrapper


class Contract:
    """
    Base class of every deployed object.

    Subclass methods decorated with ``@external`` take the message sender as
    their first argument after ``self``.
    """

    _selectors: Dict[bytes, Tuple[str, List[str], str]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        selectors = {}
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                signature = getattr(member, "__abi_signature__", None)
                if signature:
                    selector = compute_function_selector(signature)
                    selectors[selector] = (name, parse_signature_types(signature), signature)
        cls._selectors = selectors

    def __init__(self, ledger, address: Optional[str] = None, deployer: str = GENESIS_DEPLOYER):
        self.ledger = ledger
        if address is None:
            address = ledger.next_contract_address(deployer)
        self.address = to_checksum_address(address)
        ledger.deploy(self)

    # ── Storage and events ────────────────────────────────────────────

    def _load(self, key: Hashable, default: Any = None) -> Any:
        return self.ledger.load(self.address, key, default)

    def _store(self, key: Hashable, value: Any) -> None:
        self.ledger.store(self.address, key, value)

    def emit(self, event: str, **args) -> Event:
        return self.ledger.emit(event, self.address, args)

    @property
    def now(self) -> int:
        return self.ledger.timestamp

    # ── Dispatch ──────────────────────────────────────────────────────

    @classmethod
    def signatures(cls) -> List[str]:
        return sorted(sig for _, _, sig in cls._selectors.values())

    @classmethod
    def resolve_selector(cls, selector: bytes) -> Optional[Tuple[str, List[str], str]]:
        return cls._selectors.get(selector)

    def decode_call(self, data: bytes) -> Tuple[str, Tuple[Any, ...]]:
        """
        Decode calldata aimed at this contract.

        Returns:
            (method name, decoded arguments)

        Raises:
            ContractCallError: Unknown selector or malformed arguments
        """
        selector, encoded = split_function_call(data)
        entry = self._selectors.get(selector)
        if entry is None:
            raise ContractCallError(
                f"{type(self).__name__}: unknown selector 0x{selector.hex()}"
            )
        name, arg_types, signature = entry
        try:
            args = decode_function_args(arg_types, encoded)
        except DecodingError as e:
            raise ContractCallError(f"{type(self).__name__}: bad arguments for {signature}") from e
        return name, args

    def handle_call(self, caller: str, data: bytes, value: int = 0) -> Any:
        """Entry point of a message call; value has already been credited."""
        if not data:
            return self.receive(caller, value)
        name, args = self.decode_call(data)
        return getattr(self, name)(caller, *args)

    def receive(self, caller: str, value: int) -> None:
        """Plain value transfer. Contracts reject value unless they override this."""
        if value:
            raise ContractCallError(f"{type(self).__name__} does not accept value")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {short_address(self.address)}>"
