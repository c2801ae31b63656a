"""Import commands from a YAML file.

The file is a list of mappings::

    - name: Check GPU
      description: Print GPU info
      script: nvidia-smi
      timeout_seconds: 60

Entries that fail validation are skipped with a warning; an unreadable or
malformed file raises CommandFileError.
"""

import logging
from pathlib import Path

import yaml

from bastion.errors import ValidationError

logger = logging.getLogger(__name__)


class CommandFileError(ValidationError):
    """Raised when a command file cannot be read or parsed."""


def load_command_documents(path):
    path = Path(path).expanduser()
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise CommandFileError(f"read yaml: {e}")
    except yaml.YAMLError as e:
        raise CommandFileError(f"parse yaml: {e}")

    if data is None:
        return []
    if not isinstance(data, list):
        raise CommandFileError(f"command file {path} must contain a YAML list")
    return data


def import_commands(service, path):
    """Create every valid command in ``path``; return the created commands."""
    created = []
    for index, doc in enumerate(load_command_documents(path)):
        if not isinstance(doc, dict):
            logger.warning(f"skip command #{index}: entry must be a mapping")
            continue

        name = str(doc.get("name") or "")
        timeout = doc.get("timeout_seconds")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int)):
            logger.warning(f"skip command {name!r}: timeout_seconds must be an integer")
            continue

        try:
            command = service.create_command(
                name=name,
                description=str(doc.get("description") or ""),
                script=str(doc.get("script") or ""),
                timeout_seconds=timeout,
            )
        except ValidationError as e:
            logger.warning(f"skip command {name!r}: {e.message}")
            continue
        created.append(command)

    logger.info(f"Imported {len(created)} command(s) from {path}")
    return created
