"""
Allow/deny policy evaluation for IPv4 addresses.

Allow rules take precedence over deny rules, regardless of how specific
either rule is or the order they were configured in.

Example:
    >>> from ipaddress import IPv4Address
    >>> from restrict_ip import PolicyTable
    >>> table = PolicyTable.from_options(deny_private_ranges=True, allow=["192.168.0.0/24"])
    >>> table.is_allowed(IPv4Address("192.168.0.15"))
    True
    >>> table.is_allowed(IPv4Address("192.168.1.0"))
    False
"""

from ipaddress import IPv4Address
from typing import Annotated, Any, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PlainValidator, field_validator

from ._network import LOCALHOST, PRIVATE_RANGES, RESERVED_RANGES, NetworkRange

__all__ = [
    "PolicyConfig",
    "PolicyTable",
    "ALLOW_ALL",
    "PUBLIC_ONLY",
]

Range = Annotated[NetworkRange, PlainValidator(NetworkRange.parse)]


class PolicyConfig(BaseModel):
    """Static guard configuration, validated once and frozen.

    Accepts the configuration keys ``deny``, ``allow``,
    ``deny_private_ranges``, ``deny_reserved_ranges`` and
    ``allow_localhost``. ``deny_rfc1918`` and ``deny_rfc6890`` are accepted
    as older spellings of the two range switches.

    Raises:
        pydantic.ValidationError: On malformed CIDRs or unknown keys.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    deny_ranges: Tuple[Range, ...] = Field(
        default=(),
        validation_alias=AliasChoices("deny", "deny_ranges"),
    )
    allow_ranges: Tuple[Range, ...] = Field(
        default=(),
        validation_alias=AliasChoices("allow", "allow_ranges"),
    )
    deny_private: bool = Field(
        default=False,
        validation_alias=AliasChoices("deny_private_ranges", "deny_rfc1918", "deny_private"),
    )
    deny_reserved: bool = Field(
        default=False,
        validation_alias=AliasChoices("deny_reserved_ranges", "deny_rfc6890", "deny_reserved"),
    )
    allow_localhost: bool = False

    @field_validator("deny_ranges", "allow_ranges", mode="before")
    @classmethod
    def _single_cidr(cls, value: Any) -> Any:
        # deny: "8.0.0.0/8" is a common shorthand for a one-element list
        if isinstance(value, str):
            return [value]
        return value


class PolicyTable:
    """Decides whether an IPv4 address may be contacted.

    Evaluation:
        1. Address inside any allow range (including 127.0.0.1/32 when
           ``allow_localhost`` is set): allowed.
        2. Otherwise, address inside any effective deny range: denied.
        3. Otherwise: allowed.

    With no deny configuration the deny set is empty and every address is
    allowed. The table is immutable and safe to share between threads and
    tasks.
    """

    def __init__(self, config: Optional[PolicyConfig] = None):
        self.config = config if config is not None else PolicyConfig()

        allow = list(self.config.allow_ranges)
        if self.config.allow_localhost and LOCALHOST not in allow:
            allow.append(LOCALHOST)

        deny = list(self.config.deny_ranges)
        extra = ()
        if self.config.deny_reserved:
            extra = RESERVED_RANGES
        elif self.config.deny_private:
            extra = PRIVATE_RANGES
        deny.extend(r for r in extra if r not in deny)

        self._allow: Tuple[NetworkRange, ...] = tuple(allow)
        self._deny: Tuple[NetworkRange, ...] = tuple(deny)

    @classmethod
    def from_options(cls, **options: Any) -> "PolicyTable":
        """Build a table straight from configuration keys."""
        return cls(PolicyConfig.model_validate(options))

    @property
    def allow_ranges(self) -> Tuple[NetworkRange, ...]:
        return self._allow

    @property
    def deny_ranges(self) -> Tuple[NetworkRange, ...]:
        return self._deny

    def denied_by(self, address: IPv4Address) -> Optional[NetworkRange]:
        """Return the deny range rejecting ``address``, or None if it is allowed."""
        for network_range in self._allow:
            if network_range.contains(address):
                return None
        for network_range in self._deny:
            if network_range.contains(address):
                return network_range
        return None

    def is_allowed(self, address: IPv4Address) -> bool:
        return self.denied_by(address) is None

    def __repr__(self) -> str:
        return f"PolicyTable(allow={[str(r) for r in self._allow]}, deny={[str(r) for r in self._deny]})"


ALLOW_ALL = PolicyTable()

# Private, loopback, link-local/metadata, multicast and the other special-use blocks.
PUBLIC_ONLY = PolicyTable(PolicyConfig(deny_reserved=True))
