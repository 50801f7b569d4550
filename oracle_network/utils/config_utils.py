"""Configuration and transaction script loading."""

import logging
import re
from typing import Any, Dict, List

import yaml

from oracle_network.core.settings import NetworkSettings

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"<%=\s*@(\w+)\s*%>")


def load_yaml_file(file_path):
    """Read one YAML document."""
    with open(file_path, "r", encoding="UTF-8") as file:
        return yaml.safe_load(file)


def load_config(config_path="config.yml") -> Dict:
    """
    Load the configuration file.

    An `include:` key names a second file whose values are used where the
    main file is silent. `<%= @key %>` placeholders are resolved against the
    merged top level keys.
    """
    logger.info("Loading configuration from %s", config_path)
    config = load_yaml_file(config_path) or {}

    included_path = config.get("include")
    if included_path:
        logger.info("Including configuration from %s", included_path)
        included = load_yaml_file(included_path) or {}
        for key in sorted(config.keys() & included.keys()):
            if config[key] != included[key] and not _both_dicts(config[key], included[key]):
                logger.warning(
                    "'%s' is set in both files, keeping %s from %s",
                    key,
                    config[key],
                    config_path,
                )
        config = merge_configs(included, config)
        config.pop("include", None)

    return replace_placeholders(config, config)


def _both_dicts(left, right) -> bool:
    return isinstance(left, dict) and isinstance(right, dict)


def merge_configs(base_config: Dict, override_config: Dict) -> Dict:
    """Merge nested sections; scalars from override_config win."""
    merged = dict(base_config)
    for key, value in override_config.items():
        if _both_dicts(merged.get(key), value):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def replace_placeholders(node: Any, values: Dict) -> Any:
    """Resolve placeholders in every string of a nested structure, in place."""
    if isinstance(node, dict):
        items = node.items()
    elif isinstance(node, list):
        items = enumerate(node)
    else:
        return node
    for key, value in list(items):
        if isinstance(value, str):
            node[key] = resolve_placeholder(value, values)
        else:
            replace_placeholders(value, values)
    return node


def resolve_placeholder(value: str, values: Dict) -> Any:
    """Substitute a placeholder, leaving unknown names untouched.

    A string that is only a placeholder takes the referenced value as is,
    so numbers stay numbers.
    """
    whole = PLACEHOLDER.fullmatch(value.strip())
    if whole:
        return values.get(whole.group(1), value)
    return PLACEHOLDER.sub(
        lambda match: str(values.get(match.group(1), match.group(0))), value
    )


def load_network_settings(config: Dict) -> NetworkSettings:
    """Build the network parameters from the Network section."""
    return NetworkSettings.from_dict(config.get("Network", {}))


def load_transactions(file_path) -> List[Dict]:
    """Load a transaction script: a list of mappings, each naming its `op`."""
    transactions = load_yaml_file(file_path) or []
    if isinstance(transactions, dict):
        transactions = transactions.get("transactions") or []
    if not isinstance(transactions, list):
        raise ValueError(f"{file_path}: expected a list of transactions")
    for index, transaction in enumerate(transactions):
        if not isinstance(transaction, dict) or "op" not in transaction:
            raise ValueError(f"{file_path}: transaction {index} has no 'op'")
    logger.info("Loaded %d transactions from %s", len(transactions), file_path)
    return transactions
