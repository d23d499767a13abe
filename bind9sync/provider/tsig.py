"""
TSIG key file loading for bind9sync.

The credential is a BIND key statement, as written by tsig-keygen:

    key "ddns-key" {
        algorithm hmac-sha256;
        secret "c2VjcmV0...";
    };
"""

import re
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import dns.exception
import dns.name
import dns.tsig
import dns.tsigkeyring

from bind9sync.models.errors import ConfigurationError

_KEY_BLOCK_RE = re.compile(r'key\s+"?([^"\s{]+)"?\s*\{(.*?)\}\s*;', re.DOTALL)
_ALGORITHM_RE = re.compile(r'algorithm\s+"?([A-Za-z0-9.-]+)"?\s*;')
_SECRET_RE = re.compile(r'secret\s+"([^"]+)"\s*;')


def parse_key_file(content: str) -> Dict[str, Tuple[str, str]]:
    """
    Parse every key statement in a BIND key file.

    Args:
        content: Key file text

    Returns:
        Dict[str, Tuple[str, str]]: key name -> (algorithm, base64 secret), in file order

    Raises:
        ConfigurationError: If no complete key statement is found
    """
    keys: Dict[str, Tuple[str, str]] = {}
    for match in _KEY_BLOCK_RE.finditer(content):
        name, body = match.group(1), match.group(2)
        secret = _SECRET_RE.search(body)
        if not secret:
            raise ConfigurationError(f"TSIG key {name!r} has no secret")
        algorithm = _ALGORITHM_RE.search(body)
        if algorithm:
            algorithm_name = algorithm.group(1).lower()
        else:
            algorithm_name = dns.tsig.default_algorithm.to_text(omit_final_dot=True)
        keys[name] = (algorithm_name, secret.group(1))
    if not keys:
        raise ConfigurationError("no TSIG key statement found in key file")
    return keys


def load_keyring(
    path: Union[str, Path], key_name: Optional[str] = None
) -> Tuple[Dict[dns.name.Name, dns.tsig.Key], dns.name.Name]:
    """
    Build a dnspython keyring from a key file.

    Args:
        path: Path to the decoded key file
        key_name: Key to sign with; defaults to the first key in the file

    Returns:
        Tuple of (keyring, key name)
    """
    try:
        content = Path(path).read_text("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"cannot read TSIG key file: {e}") from e

    keys = parse_key_file(content)
    if key_name is None:
        key_name = next(iter(keys))
    elif key_name not in keys:
        raise ConfigurationError(f"TSIG key {key_name!r} not found in key file")

    try:
        keyring = dns.tsigkeyring.from_text(keys)
    except (dns.exception.DNSException, ValueError) as e:
        raise ConfigurationError(f"invalid TSIG key: {e}") from e
    return keyring, dns.name.from_text(key_name)
