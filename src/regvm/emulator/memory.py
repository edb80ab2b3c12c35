"""
Flat Memory for the regvm Virtual Machine
=========================================

A single fixed-size byte array holding both the loaded program (from
address 0 upwards) and the stack (from the top downwards).

Memory Map (default 1024 bytes):
    $0000-....   Program image
    ....-$03FF   Stack, grows toward address 0

There is no boundary between the two regions. A program whose stack grows
far enough overwrites its own code and keeps running with whatever bytes
are now there. Only addresses outside the array fault.
"""

from typing import Optional

from regvm.errors import MemoryAccessError, ProgramLoadError

MEMORY_SIZE = 1024


class Memory:
    """
    Bounds-checked flat memory.

    Every access outside ``0 .. size-1`` raises MemoryAccessError. Words
    are big-endian: the high byte at the lower address.

    Attributes:
        size: Number of bytes
    """

    def __init__(self, size: int = MEMORY_SIZE):
        """
        Initialize memory, zero-filled.

        Args:
            size: Memory size in bytes
        """
        if size < 2:
            raise ValueError(f"memory size must be at least 2 bytes, got {size}")
        self.size = size
        self._data = bytearray(size)

    def __len__(self) -> int:
        return self.size

    def read(self, address: int, pc: Optional[int] = None) -> int:
        """
        Read byte from memory.

        Args:
            address: Byte address
            pc: Address of the executing instruction, for the fault

        Returns:
            Byte value at address
        """
        if not 0 <= address < self.size:
            raise MemoryAccessError(address, self.size, pc)
        return self._data[address]

    def write(self, address: int, value: int, pc: Optional[int] = None) -> None:
        """
        Write byte to memory.

        Args:
            address: Byte address
            value: Byte value (masked to 8 bits)
            pc: Address of the executing instruction, for the fault
        """
        if not 0 <= address < self.size:
            raise MemoryAccessError(address, self.size, pc)
        self._data[address] = value & 0xFF

    def read_word(self, address: int, pc: Optional[int] = None) -> int:
        """Read 16-bit word (big-endian)."""
        hi = self.read(address, pc)
        lo = self.read(address + 1, pc)
        return (hi << 8) | lo

    def write_word(self, address: int, value: int, pc: Optional[int] = None) -> None:
        """Write 16-bit word (big-endian)."""
        self.write(address, (value >> 8) & 0xFF, pc)
        self.write(address + 1, value & 0xFF, pc)

    def load(self, image: bytes, address: int = 0) -> None:
        """
        Copy a program image into memory.

        Args:
            image: Bytes to copy
            address: Start address

        Raises:
            ProgramLoadError: If the image does not fit
        """
        if address < 0 or address + len(image) > self.size:
            raise ProgramLoadError(len(image), self.size)
        self._data[address:address + len(image)] = image

    def clear(self) -> None:
        """Zero-fill the whole memory."""
        self._data[:] = bytes(self.size)

    def snapshot(self) -> bytes:
        """Return a copy of the memory contents."""
        return bytes(self._data)

    def hex_dump(self, start: int = 0, length: Optional[int] = None, width: int = 16) -> str:
        """
        Format a region as a hex dump.

        Returns:
            Lines of the form ``$0000: 06 01 05 ...``
        """
        end = self.size if length is None else min(self.size, start + length)
        lines = []
        for row in range(start, end, width):
            chunk = self._data[row:min(row + width, end)]
            lines.append(f"${row:04X}: " + " ".join(f"{b:02X}" for b in chunk))
        return "\n".join(lines)
