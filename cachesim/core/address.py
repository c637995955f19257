"""Address decoding.

  offset = address & (block_size - 1)
  index  = (address >> offset_bits) & (num_sets - 1)
  tag    = address >> (offset_bits + index_bits)

The geometry comes from a validated CacheConfig, so decoding never fails for
a non-negative integer address.
"""

from typing import NamedTuple

from cachesim.core.config import CacheConfig, MAX_ADDRESS
from cachesim.core.errors import AddressError


class DecodedAddress(NamedTuple):
    tag: int
    index: int
    offset: int


class AddressLayout:
    """Precomputed shifts and masks for one cache geometry."""

    def __init__(self, config: CacheConfig):
        self.offset_bits = config.offset_bits
        self.index_bits = config.index_bits
        self.offset_mask = config.block_size - 1
        self.index_mask = config.num_sets - 1

    def decode(self, address: int) -> DecodedAddress:
        offset = address & self.offset_mask
        index = (address >> self.offset_bits) & self.index_mask
        tag = address >> (self.offset_bits + self.index_bits)
        return DecodedAddress(tag, index, offset)

    def block_address(self, tag: int, index: int) -> int:
        """Base address of the block identified by (tag, index)."""
        return (tag << (self.offset_bits + self.index_bits)) | (index << self.offset_bits)

    def split_bits(self, address: int, width: int = 0) -> tuple:
        """Binary strings for (tag, index, offset), as shown by the teaching UI."""
        width = max(width, self.offset_bits + self.index_bits + 1, address.bit_length())
        bits = format(address, "b").zfill(width)
        tag_len = width - self.index_bits - self.offset_bits
        return (
            bits[:tag_len],
            bits[tag_len:tag_len + self.index_bits],
            bits[tag_len + self.index_bits:],
        )


def decode(address: int, config: CacheConfig) -> DecodedAddress:
    return AddressLayout(config).decode(address)


def check_address(address) -> int:
    if isinstance(address, bool) or not isinstance(address, int):
        raise AddressError(f"address must be an int, got {type(address).__name__}")
    if address < 0 or address > MAX_ADDRESS:
        raise AddressError(f"address {address} out of range [0, {MAX_ADDRESS:#x}]")
    return address


__all__ = ["AddressLayout", "DecodedAddress", "check_address", "decode"]
