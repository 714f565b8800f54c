"""
Error types raised by the cbcseal cipher engine.

Every error derives from ``ValueError`` through ``CipherError`` so callers
that only catch ``ValueError`` keep working.
"""


class CipherError(ValueError):
    """Base exception for cbcseal operations."""
    pass


class InvalidDataError(CipherError):
    """Raised when plaintext, ciphertext or envelope is empty or malformed."""

    def __init__(self, message: str = "invalid data on input (empty or unpadded)"):
        super().__init__(message)


class InvalidPassphraseError(CipherError):
    """Raised when the passphrase is absent or empty."""

    def __init__(self, message: str = "invalid passphrase on input (empty)"):
        super().__init__(message)


class InvalidSaltError(CipherError):
    """Raised when the salt is absent or empty."""

    def __init__(self, message: str = "invalid salt on input (empty)"):
        super().__init__(message)


class InvalidBlockSizeError(CipherError):
    """Raised when the padding codec gets a block size it cannot encode."""

    def __init__(self, message: str = "invalid block size"):
        super().__init__(message)


class InvalidPaddingError(CipherError):
    """Raised when padding is malformed on unpad, including wrong-key decrypts."""

    def __init__(self, message: str = "invalid padding on input"):
        super().__init__(message)


class KeyDerivationError(CipherError):
    """Raised when the PBKDF2 primitive cannot produce key material."""

    def __init__(self, message: str = "key derivation failed"):
        super().__init__(message)


class EncryptionError(CipherError):
    """Raised when key derivation or IV generation fails during encryption."""

    def __init__(self, message: str = "encryption failed"):
        super().__init__(message)


class DecryptionError(CipherError):
    """Raised when key derivation fails during decryption."""

    def __init__(self, message: str = "decryption failed"):
        super().__init__(message)


__all__ = [
    "CipherError",
    "InvalidDataError",
    "InvalidPassphraseError",
    "InvalidSaltError",
    "InvalidBlockSizeError",
    "InvalidPaddingError",
    "KeyDerivationError",
    "EncryptionError",
    "DecryptionError",
]
