# CBCSEAL CIPHER ENGINE ->

import os as _os_module

from .errors import (
    DecryptionError,
    EncryptionError,
    InvalidBlockSizeError,
    InvalidDataError,
    InvalidPaddingError,
    InvalidPassphraseError,
    InvalidSaltError,
    KeyDerivationError,
)


class cbcseal:
    import base64
    import binascii
    import concurrent.futures
    import os
    import pathlib
    import sys
    import typing
    from cryptography.exceptions import UnsupportedAlgorithm
    from cryptography.hazmat.primitives import hashes, padding
    from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
    from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

    @staticmethod
    def _env_int(name: str) -> "cbcseal.typing.Optional[int]":
        value = _os_module.getenv(name)
        if not value:
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return None
        if parsed <= 0:
            return None
        return parsed

    ENGINE_VERSION = "1.0.0"
    # Protocol constants shared by every encrypt/decrypt implementation.
    BLOCK_SIZE = 16
    KEY_LEN = 32
    ITERATIONS = 250_000
    MAX_PAD_BLOCK_SIZE = 255  # pad length must fit in one byte
    FILE_SUFFIX = ".cbc"
    DECRYPTED_SUFFIX = ".dec"
    PASSWORD_ENV = "CBCSEAL_PASSWORD"
    SALT_ENV = "CBCSEAL_SALT"
    MAX_INPUT_BYTES = 1024 * 1024 * 1024  # whole files are held in memory
    _MAX_INPUT_BYTES_ENV = _env_int("CBCSEAL_MAX_INPUT_BYTES")
    if _MAX_INPUT_BYTES_ENV is not None:
        MAX_INPUT_BYTES = _MAX_INPUT_BYTES_ENV
    _CPU_COUNT = max(1, os.cpu_count() or 1)
    _SILENT_MODE: typing.ClassVar[bool] = False

    class _SensitiveBuffer:
        """Key material holder that never prints its contents and can be zeroed."""

        __slots__ = ("_buf",)

        def __init__(self, data) -> None:
            self._buf = bytearray(data)

        def __enter__(self) -> "cbcseal._SensitiveBuffer":
            return self

        def __exit__(self, exc_type, exc, tb) -> bool:
            self.wipe()
            return False

        def __len__(self) -> int:
            return len(self._buf)

        def __repr__(self) -> str:
            return f"<_SensitiveBuffer len={len(self._buf)} redacted>"

        __str__ = __repr__

        def __reduce__(self):
            raise TypeError("sensitive buffers cannot be serialized")

        @property
        def raw(self) -> bytearray:
            return self._buf

        def wipe(self) -> None:
            self._buf[:] = bytes(len(self._buf))

    @staticmethod
    def _human_readable_size(num_bytes: int) -> str:
        units = ["B", "KiB", "MiB", "GiB"]
        value = float(num_bytes)
        for unit in units:
            if value < 1024.0 or unit == units[-1]:
                return f"{value:.2f} {unit}"
            value /= 1024.0
        return f"{value:.2f} TiB"

    @staticmethod
    def _report(message: str) -> None:
        if not cbcseal._SILENT_MODE:
            print(message)

    # ------------------------------------------------------------------
    # Input coercion
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_data(value, label: str) -> bytes:
        if value is None:
            raise InvalidDataError()
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"{label} must be bytes")
        data = bytes(value)
        if not data:
            raise InvalidDataError()
        return data

    @staticmethod
    def _coerce_secret(value, error: "cbcseal.typing.Type[Exception]", label: str) -> bytes:
        if value is None:
            raise error()
        if isinstance(value, str):
            value = value.encode("utf-8")
        elif isinstance(value, (bytes, bytearray, memoryview)):
            value = bytes(value)
        else:
            raise TypeError(f"Unsupported {label} type: {type(value)!r}")
        if not value:
            raise error()
        return value

    @staticmethod
    def _check_block_size(block_size: int) -> None:
        if isinstance(block_size, bool) or not isinstance(block_size, int):
            raise TypeError("block_size must be an int")
        if block_size <= 0 or block_size > cbcseal.MAX_PAD_BLOCK_SIZE:
            raise InvalidBlockSizeError()

    # ------------------------------------------------------------------
    # Key derivation
    # ------------------------------------------------------------------

    @staticmethod
    def _derive_key_buffer(
        passphrase: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]",
        salt: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]"
    ) -> "cbcseal._SensitiveBuffer":
        password = cbcseal._coerce_secret(passphrase, InvalidPassphraseError, "passphrase")
        salt_bytes = cbcseal._coerce_secret(salt, InvalidSaltError, "salt")
        try:
            kdf = cbcseal.PBKDF2HMAC(
                algorithm=cbcseal.hashes.SHA256(),
                length=cbcseal.KEY_LEN,
                salt=salt_bytes,
                iterations=cbcseal.ITERATIONS
            )
            return cbcseal._SensitiveBuffer(kdf.derive(password))
        except (cbcseal.UnsupportedAlgorithm, TypeError, ValueError) as exc:
            raise KeyDerivationError() from exc

    @staticmethod
    def derive_key(
        passphrase: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]",
        salt: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]"
    ) -> bytes:
        """
        Derive the 32-byte AES key for a passphrase and salt.

        PBKDF2-HMAC-SHA256 with a fixed 250,000 iterations. The result is
        deterministic and never cached.
        """
        with cbcseal._derive_key_buffer(passphrase, salt) as key:
            return bytes(key.raw)

    # ------------------------------------------------------------------
    # Padding codec
    # ------------------------------------------------------------------

    @staticmethod
    def pad(data: bytes, block_size: int) -> bytes:
        """Append ``n`` bytes of value ``n`` so the length is a multiple of ``block_size``.

        An already aligned input gains one full block.
        """
        cbcseal._check_block_size(block_size)
        data = cbcseal._coerce_data(data, "data")
        padder = cbcseal.padding.PKCS7(block_size * 8).padder()
        return padder.update(data) + padder.finalize()

    @staticmethod
    def unpad(data: bytes, block_size: int) -> bytes:
        """Validate and strip block padding added by :meth:`pad`."""
        cbcseal._check_block_size(block_size)
        data = cbcseal._coerce_data(data, "data")
        pad_len = data[-1]
        if len(data) % block_size != 0 or pad_len == 0 or pad_len > block_size:
            raise InvalidPaddingError()
        # The unpadder compares every byte of the pad region, not just the last one.
        unpadder = cbcseal.padding.PKCS7(block_size * 8).unpadder()
        try:
            return unpadder.update(data) + unpadder.finalize()
        except ValueError as exc:
            raise InvalidPaddingError() from exc

    # ------------------------------------------------------------------
    # Cipher engine
    # ------------------------------------------------------------------

    @staticmethod
    def _random_iv(random_source: "cbcseal.typing.Optional[cbcseal.typing.Callable[[int], bytes]]") -> bytes:
        source = random_source or cbcseal.os.urandom
        try:
            iv = source(cbcseal.BLOCK_SIZE)
        except (OSError, NotImplementedError) as exc:
            raise EncryptionError() from exc
        if not isinstance(iv, (bytes, bytearray)) or len(iv) != cbcseal.BLOCK_SIZE:
            raise EncryptionError("randomness source did not return a full IV")
        return bytes(iv)

    @staticmethod
    def encrypt(
        plaintext: bytes,
        passphrase: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]",
        salt: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]",
        *,
        random_source: "cbcseal.typing.Optional[cbcseal.typing.Callable[[int], bytes]]" = None
    ) -> bytes:
        """
        Encrypt ``plaintext`` into an ``IV || ciphertext`` envelope.

        Args:
            plaintext: Non-empty payload.
            passphrase: Non-empty passphrase (``str`` is UTF-8 encoded).
            salt: Non-empty salt (``str`` is UTF-8 encoded).
            random_source: Callable returning ``n`` random bytes; defaults to
                ``os.urandom``.

        Returns:
            16-byte IV followed by the AES-256-CBC ciphertext of the padded
            plaintext.

        Raises:
            InvalidDataError, InvalidPassphraseError, InvalidSaltError: Empty inputs.
            EncryptionError: Key derivation or IV generation failed.
        """
        data = cbcseal._coerce_data(plaintext, "plaintext")
        password = cbcseal._coerce_secret(passphrase, InvalidPassphraseError, "passphrase")
        salt_bytes = cbcseal._coerce_secret(salt, InvalidSaltError, "salt")
        try:
            key = cbcseal._derive_key_buffer(password, salt_bytes)
        except KeyDerivationError as exc:
            raise EncryptionError() from exc
        with key:
            padded = cbcseal.pad(data, cbcseal.BLOCK_SIZE)
            iv = cbcseal._random_iv(random_source)
            encryptor = cbcseal.Cipher(
                cbcseal.algorithms.AES(key.raw),
                cbcseal.modes.CBC(iv)
            ).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        return iv + ciphertext

    @staticmethod
    def decrypt(
        envelope: bytes,
        passphrase: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]",
        salt: "cbcseal.typing.Union[str, bytes, bytearray, memoryview]"
    ) -> bytes:
        """
        Recover the plaintext from an ``IV || ciphertext`` envelope.

        There is no integrity tag. A wrong passphrase or salt almost always
        surfaces as ``InvalidPaddingError``; a flipped ciphertext byte may
        instead decrypt with one garbled block and one flipped byte in the
        following block.

        Raises:
            InvalidDataError: Empty envelope, or not a whole number of blocks
                with room for an IV plus one ciphertext block.
            InvalidPassphraseError, InvalidSaltError: Empty secrets.
            DecryptionError: Key derivation failed.
            InvalidPaddingError: Padding check failed after decryption.
        """
        blob = cbcseal._coerce_data(envelope, "envelope")
        password = cbcseal._coerce_secret(passphrase, InvalidPassphraseError, "passphrase")
        salt_bytes = cbcseal._coerce_secret(salt, InvalidSaltError, "salt")
        block = cbcseal.BLOCK_SIZE
        if len(blob) % block != 0 or len(blob) // block < 2:
            raise InvalidDataError()
        iv, ciphertext = blob[:block], blob[block:]
        try:
            key = cbcseal._derive_key_buffer(password, salt_bytes)
        except KeyDerivationError as exc:
            raise DecryptionError() from exc
        with key:
            decryptor = cbcseal.Cipher(
                cbcseal.algorithms.AES(key.raw),
                cbcseal.modes.CBC(iv)
            ).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
        return cbcseal.unpad(padded, block)

    # ------------------------------------------------------------------
    # Text armor
    # ------------------------------------------------------------------

    @staticmethod
    def encrypt_text(
        text: str,
        passphrase: "cbcseal.typing.Union[str, bytes]",
        salt: "cbcseal.typing.Union[str, bytes]"
    ) -> str:
        """Encrypt a string and return the envelope as standard Base64."""
        if not isinstance(text, str):
            raise TypeError("text must be a string")
        envelope = cbcseal.encrypt(text.encode("utf-8"), passphrase, salt)
        return cbcseal.base64.b64encode(envelope).decode("ascii")

    @staticmethod
    def decrypt_text(
        token: str,
        passphrase: "cbcseal.typing.Union[str, bytes]",
        salt: "cbcseal.typing.Union[str, bytes]"
    ) -> str:
        if not isinstance(token, str):
            raise TypeError("token must be a string")
        try:
            envelope = cbcseal.base64.b64decode(token.strip(), validate=True)
        except (cbcseal.binascii.Error, ValueError) as exc:
            raise InvalidDataError("invalid base64 envelope") from exc
        plaintext = cbcseal.decrypt(envelope, passphrase, salt)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidDataError("decrypted payload is not valid UTF-8") from exc

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_path(path_like: "cbcseal.typing.Union[str, cbcseal.pathlib.Path]") -> "cbcseal.pathlib.Path":
        if isinstance(path_like, cbcseal.pathlib.Path):
            path = path_like
        else:
            path = cbcseal.pathlib.Path(str(path_like))
        path = path.expanduser()
        try:
            return path.resolve(strict=False)
        except (OSError, RuntimeError):
            return path

    @staticmethod
    def _ensure_existing_file(path: "cbcseal.pathlib.Path") -> None:
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")

    @staticmethod
    def _ensure_size_limit(path: "cbcseal.pathlib.Path", max_bytes: "cbcseal.typing.Optional[int]" = None) -> None:
        limit = max_bytes or cbcseal.MAX_INPUT_BYTES
        size = path.stat().st_size
        if size > limit:
            human_size = cbcseal._human_readable_size(size)
            human_limit = cbcseal._human_readable_size(limit)
            raise ValueError(
                f"{path.name} is {human_size}, exceeding the {human_limit} in-memory limit"
            )

    @staticmethod
    def _read_input(path: "cbcseal.pathlib.Path") -> bytes:
        cbcseal._ensure_existing_file(path)
        cbcseal._ensure_size_limit(path)
        return path.read_bytes()

    @staticmethod
    def _remove_input(path: "cbcseal.pathlib.Path", keep_input: bool, output_path: "cbcseal.pathlib.Path") -> None:
        if keep_input:
            return
        if cbcseal._normalize_path(path) == cbcseal._normalize_path(output_path):
            return
        try:
            cbcseal.os.remove(path)
        except FileNotFoundError:
            pass

    @staticmethod
    def _decrypted_output_path(path: "cbcseal.pathlib.Path") -> "cbcseal.pathlib.Path":
        if path.suffix.lower() == cbcseal.FILE_SUFFIX:
            return path.with_suffix("")
        return path.with_name(path.name + cbcseal.DECRYPTED_SUFFIX)

    @staticmethod
    def encrypt_file(
        path: "cbcseal.typing.Union[str, cbcseal.pathlib.Path]",
        passphrase: "cbcseal.typing.Union[str, bytes]",
        salt: "cbcseal.typing.Union[str, bytes]",
        *,
        output: "cbcseal.typing.Optional[cbcseal.typing.Union[str, cbcseal.pathlib.Path]]" = None,
        keep_input: bool = False
    ) -> "cbcseal.pathlib.Path":
        """
        Seal a whole file into ``<name>.cbc`` (or ``output``).

        The file is read into memory, so it must not exceed ``MAX_INPUT_BYTES``.
        The input is deleted afterwards unless ``keep_input`` is set.
        """
        src = cbcseal._normalize_path(path)
        envelope = cbcseal.encrypt(cbcseal._read_input(src), passphrase, salt)
        out_path = cbcseal._normalize_path(output) if output else src.with_name(src.name + cbcseal.FILE_SUFFIX)
        out_path.write_bytes(envelope)
        cbcseal._remove_input(src, keep_input, out_path)
        return out_path

    @staticmethod
    def decrypt_file(
        path: "cbcseal.typing.Union[str, cbcseal.pathlib.Path]",
        passphrase: "cbcseal.typing.Union[str, bytes]",
        salt: "cbcseal.typing.Union[str, bytes]",
        *,
        output: "cbcseal.typing.Optional[cbcseal.typing.Union[str, cbcseal.pathlib.Path]]" = None,
        keep_input: bool = False
    ) -> "cbcseal.pathlib.Path":
        """Reverse :meth:`encrypt_file`. Nothing is written if decryption fails."""
        src = cbcseal._normalize_path(path)
        plaintext = cbcseal.decrypt(cbcseal._read_input(src), passphrase, salt)
        out_path = cbcseal._normalize_path(output) if output else cbcseal._decrypted_output_path(src)
        out_path.write_bytes(plaintext)
        cbcseal._remove_input(src, keep_input, out_path)
        return out_path

    @staticmethod
    def _resolve_password(password: "cbcseal.typing.Optional[str]", env_name: "cbcseal.typing.Optional[str]" = None) -> str:
        if not password and env_name:
            password = cbcseal.os.getenv(env_name, "")
        if not password:
            return ""
        if cbcseal.os.path.isfile(password):
            with open(password, "r", encoding="utf-8") as handle:
                password = handle.read().rstrip("\r\n")
        return password

    @staticmethod
    def _coerce_file_list(files) -> "cbcseal.typing.List[cbcseal.pathlib.Path]":
        if isinstance(files, (str, cbcseal.pathlib.Path)):
            candidates = [files]
        else:
            candidates = list(files)
        if not candidates:
            raise ValueError("No files provided")
        normalized = []
        for item in candidates:
            path = cbcseal._normalize_path(item)
            if path not in normalized:
                normalized.append(path)
        return normalized

    @staticmethod
    def handle_files(
        files: "cbcseal.typing.Union[str, cbcseal.pathlib.Path, cbcseal.typing.Iterable[cbcseal.typing.Union[str, cbcseal.pathlib.Path]]]",
        password: str,
        salt: str,
        *,
        keep_input: bool = False,
        silent: bool = False
    ):
        """
        Encrypt or decrypt each path: ``.cbc`` files are opened, anything else is sealed.

        ``password`` may name a file holding the password. Returns
        ``"SUCCESS!"``/``"FAIL!"`` for one path, or a ``{path: status}`` dict.
        Repeated paths are processed once.

        ``silent`` is applied through the class-level ``_SILENT_MODE`` flag, so
        concurrent ``handle_files`` calls with different ``silent`` values can
        see each other's setting.
        """
        paths = cbcseal._coerce_file_list(files)
        previous_silent = cbcseal._SILENT_MODE
        cbcseal._SILENT_MODE = silent
        try:
            try:
                resolved_password = cbcseal._resolve_password(password)
                if not resolved_password:
                    raise ValueError("password is empty")
            except (OSError, ValueError) as exc:
                cbcseal._report(f"Password resolution failed: {exc}")
                return "FAIL!" if len(paths) == 1 else {str(p): "FAIL!" for p in paths}

            def _process(path: "cbcseal.pathlib.Path") -> "tuple[str, str]":
                try:
                    if path.suffix.lower() == cbcseal.FILE_SUFFIX:
                        out_path = cbcseal.decrypt_file(path, resolved_password, salt, keep_input=keep_input)
                    else:
                        out_path = cbcseal.encrypt_file(path, resolved_password, salt, keep_input=keep_input)
                except (OSError, ValueError, TypeError) as exc:
                    cbcseal._report(f"Failed to process {path}: {exc}")
                    return str(path), "FAIL!"
                cbcseal._report(f"{path} -> {out_path}")
                return str(path), "SUCCESS!"

            results: "dict[str, str]" = {}
            if len(paths) > 1 and cbcseal._CPU_COUNT > 1:
                max_workers = min(len(paths), cbcseal._CPU_COUNT)
                with cbcseal.concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
                    for file_id, status in executor.map(_process, paths):
                        results[file_id] = status
            else:
                for path in paths:
                    file_id, status = _process(path)
                    results[file_id] = status
        finally:
            cbcseal._SILENT_MODE = previous_silent

        if len(paths) == 1:
            return next(iter(results.values()))
        return results


def cli(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(prog="cbcseal", description="Passphrase-based AES-256-CBC toolkit")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {cbcseal.ENGINE_VERSION}"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _add_secret_args(sub) -> None:
        sub.add_argument(
            "-p", "--password",
            default="",
            help=f"Password text or path to a file holding it (falls back to ${cbcseal.PASSWORD_ENV})"
        )
        sub.add_argument(
            "-s", "--salt",
            default="",
            help=f"Salt text shared by encrypt and decrypt (falls back to ${cbcseal.SALT_ENV})"
        )

    file_cmd = subparsers.add_parser(
        "file",
        help="Encrypt files, or decrypt files ending in .cbc"
    )
    file_cmd.add_argument(
        "paths",
        nargs='+',
        help="One or more file paths"
    )
    _add_secret_args(file_cmd)
    file_cmd.add_argument(
        "--keep-input",
        action="store_true",
        help="Do not delete the input after processing"
    )
    file_cmd.add_argument(
        "--silent",
        action="store_true",
        help="Suppress per-file status lines"
    )

    enc_cmd = subparsers.add_parser("encrypt-text", help="Encrypt text and print a Base64 envelope")
    enc_cmd.add_argument("text", help="UTF-8 text to encrypt")
    _add_secret_args(enc_cmd)

    dec_cmd = subparsers.add_parser("decrypt-text", help="Decrypt a Base64 envelope and print the text")
    dec_cmd.add_argument("token", help="Base64 envelope produced by encrypt-text")
    _add_secret_args(dec_cmd)

    args = parser.parse_args(argv)

    try:
        password = cbcseal._resolve_password(args.password, cbcseal.PASSWORD_ENV)
    except OSError as exc:
        print(f"Failed to read password file: {exc}")
        return 2
    salt = args.salt or cbcseal.os.getenv(cbcseal.SALT_ENV, "")
    if not password:
        print(f"Password required (use -p or set {cbcseal.PASSWORD_ENV})")
        return 2
    if not salt:
        print(f"Salt required (use -s or set {cbcseal.SALT_ENV})")
        return 2

    if args.command == "file":
        result = cbcseal.handle_files(
            args.paths,
            password,
            salt,
            keep_input=args.keep_input,
            silent=args.silent
        )
        if isinstance(result, dict):
            return 0 if all(status == "SUCCESS!" for status in result.values()) else 1
        return 0 if result == "SUCCESS!" else 1

    try:
        if args.command == "encrypt-text":
            print(cbcseal.encrypt_text(args.text, password, salt))
        else:
            print(cbcseal.decrypt_text(args.token, password, salt))
    except (ValueError, TypeError) as exc:
        print(f"Error: {exc}")
        return 1
    return 0


def main(argv=None) -> int:
    return cli(argv)


if __name__ == "__main__":
    raise SystemExit(main())
