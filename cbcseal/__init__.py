"""
CBCSEAL - passphrase-based AES-256-CBC envelopes

Derive a 256-bit key from a passphrase and salt (PBKDF2-HMAC-SHA256,
250,000 iterations), pad the payload to whole 16-byte blocks, and encrypt it
in CBC mode under a fresh random IV. The envelope is ``IV || ciphertext``.
"""

from .main import cbcseal, cli, main
from .errors import *
from .version import __version__

# ============================================================================
# CORE PRIMITIVES (bytes -> bytes)
# ============================================================================

BLOCK_SIZE = cbcseal.BLOCK_SIZE
KEY_LEN = cbcseal.KEY_LEN
ITERATIONS = cbcseal.ITERATIONS


def derive_key(passphrase, salt):
    """
    PBKDF2-HMAC-SHA256 key derivation.

    Args:
        passphrase: Non-empty str or bytes
        salt: Non-empty str or bytes

    Returns:
        32-byte key (same inputs always give the same key)
    """
    return cbcseal.derive_key(passphrase, salt)


def pad(data: bytes, block_size: int): return cbcseal.pad(data, block_size)
def unpad(data: bytes, block_size: int): return cbcseal.unpad(data, block_size)


def encrypt(plaintext: bytes, passphrase, salt, *, random_source=None):
    """
    Encrypt bytes into an ``IV || ciphertext`` envelope.

    Args:
        plaintext: Non-empty payload
        passphrase: Non-empty str or bytes
        salt: Non-empty str or bytes
        random_source: Optional callable ``n -> bytes`` used for the IV

    Returns:
        Envelope bytes, a multiple of 16 and at least 32 bytes long

    Note:
        - A new random IV is drawn on every call
        - There is no integrity tag; use decrypt() errors as a hint only
    """
    return cbcseal.encrypt(plaintext, passphrase, salt, random_source=random_source)


def decrypt(envelope: bytes, passphrase, salt):
    """
    Decrypt an envelope produced by encrypt().

    Raises:
        InvalidDataError: Envelope empty, misaligned or shorter than two blocks
        InvalidPaddingError: Wrong passphrase/salt or corrupted ciphertext
    """
    return cbcseal.decrypt(envelope, passphrase, salt)


# ============================================================================
# TEXT (str -> Base64 str)
# ============================================================================

def encrypt_text(text: str, passphrase, salt): return cbcseal.encrypt_text(text, passphrase, salt)
def decrypt_text(token: str, passphrase, salt): return cbcseal.decrypt_text(token, passphrase, salt)


# ============================================================================
# FILES
# ============================================================================

def encrypt_file(path, passphrase, salt, *, output=None, keep_input: bool = False):
    """
    Encrypt a file to ``<name>.cbc``.

    Note:
        - Loads the entire file into memory (CBCSEAL_MAX_INPUT_BYTES, default 1 GiB)
        - The original file is deleted unless keep_input=True
    """
    return cbcseal.encrypt_file(path, passphrase, salt, output=output, keep_input=keep_input)


def decrypt_file(path, passphrase, salt, *, output=None, keep_input: bool = False):
    return cbcseal.decrypt_file(path, passphrase, salt, output=output, keep_input=keep_input)


def handle_files(files, password: str, salt: str, *, keep_input: bool = False, silent: bool = False):
    """
    Smart file handler: ``.cbc`` files are decrypted, everything else is encrypted.

    Returns:
        "SUCCESS!" or "FAIL!" (single file)
        Dict of {path: status} for multiple files
    """
    return cbcseal.handle_files(files, password, salt, keep_input=keep_input, silent=silent)
