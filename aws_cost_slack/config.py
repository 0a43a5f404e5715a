"""
Runtime configuration, resolved once per process.
"""

import base64
import binascii
import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import boto3
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from .alerting.notifiers import DEFAULT_TIMEOUT
from .errors import ConfigError
from .report.formatter import DEFAULT_TITLE

logger = logging.getLogger(__name__)

DEFAULT_KMS_REGION = "ap-northeast-1"

Decrypt = Callable[[str], str]


@dataclass(frozen=True)
class Config:
    webhook_url: str
    channel: str
    title: str = DEFAULT_TITLE
    timeout: float = DEFAULT_TIMEOUT
    lambda_mode: bool = False

    def masked(self) -> Dict[str, Any]:
        """Return the config as a dict safe to print."""
        return {
            "webhook_url": mask_secret(self.webhook_url),
            "channel": self.channel,
            "title": self.title,
            "timeout": self.timeout,
            "lambda_mode": self.lambda_mode,
        }


class KmsDecryptor:
    """Decrypts base64-encoded KMS ciphertext."""

    def __init__(self, region: str = DEFAULT_KMS_REGION, client=None):
        self._client = client or boto3.client("kms", region_name=region)

    def __call__(self, ciphertext: str) -> str:
        try:
            blob = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigError("failed to decode KMS data as Base64") from e

        try:
            out = self._client.decrypt(CiphertextBlob=blob)
        except (BotoCoreError, ClientError) as e:
            raise ConfigError("failed to decrypt KMS value") from e

        plaintext = out["Plaintext"]
        return plaintext.decode("utf-8") if isinstance(plaintext, bytes) else plaintext


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 12:
        return "****"
    return value[:12] + "****"


def is_lambda_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    if environ is None:
        environ = os.environ
    return bool(environ.get("AWS_LAMBDA_FUNCTION_NAME"))


def _env(environ: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        v = environ.get(name)
        if v and v.strip():
            return v.strip()
    return None


def load_config_file(path: str) -> Dict[str, Any]:
    """Load YAML configuration file."""
    config_path = pathlib.Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    path: Optional[str] = None,
    decrypt: Optional[Decrypt] = None,
) -> Config:
    """Build the Config from the environment, optionally layered over a YAML file.

    Inside Lambda the webhook and channel arrive KMS-encrypted and are
    decrypted with ``decrypt`` (a KmsDecryptor unless one is given). Locally
    they are used as-is unless ``decrypt`` is passed explicitly.
    """
    if environ is None:
        environ = os.environ

    file_data = load_config_file(path) if path else {}
    lambda_mode = is_lambda_env(environ)

    webhook = _env(environ, "WEBHOOK", "ACS_WEBHOOK") or file_data.get("webhook")
    channel = _env(environ, "CHANNEL", "ACS_CHANNEL") or file_data.get("channel")
    title = _env(environ, "ACS_TITLE") or file_data.get("title") or DEFAULT_TITLE
    timeout_raw = _env(environ, "ACS_TIMEOUT")
    if timeout_raw is None:
        timeout_raw = file_data.get("timeout")
    if timeout_raw is None:
        timeout_raw = DEFAULT_TIMEOUT

    if not webhook:
        raise ConfigError("webhook URL is not set (WEBHOOK)")
    if not channel:
        raise ConfigError("channel name is not set (CHANNEL)")

    try:
        timeout = float(timeout_raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid timeout {timeout_raw!r}") from e
    if timeout <= 0:
        raise ConfigError(f"timeout must be > 0, got {timeout}")

    if decrypt is None and lambda_mode:
        decrypt = KmsDecryptor(region=_env(environ, "KMS_REGION") or DEFAULT_KMS_REGION)

    if decrypt is not None:
        logger.info("Decrypting webhook and channel")
        webhook = decrypt(str(webhook))
        channel = decrypt(str(channel))

    return Config(
        webhook_url=str(webhook),
        channel=str(channel),
        title=str(title),
        timeout=timeout,
        lambda_mode=lambda_mode,
    )
