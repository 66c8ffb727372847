import copy
import os

import toml
import yaml

DEFAULT_CONFIG_PATH = "./testwatcher.toml"
ENV_CONFIG_DIR_VAR = "TESTWATCHER_CONFIG_DIR"

DEFAULT_CONFIG = {
    "runner": {
        "command": "lein test",
        "separator": "=======================",
    },
    "classifier": {
        "positive_patterns": [],
        "legacy_reset": False,
    },
    "watch": {
        "root": ".",
        "poll_interval": 0.5,
        "rules": [
            {"pattern": r"test/.*\.clj", "directory": "test"},
            {"pattern": r"src/.*\.clj", "directory": "src"},
        ],
    },
    "logging": {
        "level": "INFO",
        "log_dir": "",
    },
}


def merge_config(base, override):
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(cli_config_path=None):
    """
    Load configuration from a TOML file, layered over the built-in defaults.

    Precedence:
      1. cli_config_path if provided (must exist).
      2. Environment variable TESTWATCHER_CONFIG_DIR (looking for testwatcher.toml).
      3. ./testwatcher.toml.

    If no file is found at an implicit location, the defaults are returned.

    Returns:
        dict: The configuration settings.
    """
    if cli_config_path:
        if not os.path.exists(cli_config_path):
            raise FileNotFoundError(f"Configuration file not found: {cli_config_path}")
        config_path = cli_config_path
    elif os.environ.get(ENV_CONFIG_DIR_VAR):
        config_path = os.path.join(os.environ[ENV_CONFIG_DIR_VAR], "testwatcher.toml")
    else:
        config_path = DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, "r") as f:
        config_data = toml.load(f)

    cfg = merge_config(DEFAULT_CONFIG, config_data)
    cfg["__config_path__"] = config_path
    return cfg


def load_watch_rules_config(watch_rules_path):
    """
    Load watch rules from a YAML file.

    Args:
        watch_rules_path (str): Path to the YAML configuration file.

    Returns:
        dict: Watch rules configuration with key 'watch_rules'.
    """
    if not os.path.exists(watch_rules_path):
        raise FileNotFoundError(
            f"Watch rules configuration file not found: {watch_rules_path}"
        )
    with open(watch_rules_path, "r") as f:
        rules_config = yaml.safe_load(f)
    return rules_config or {"watch_rules": []}


def load_watch_rules_configs(path):
    """
    Load watch rules from a YAML file or a directory containing YAML files.
    If a directory is provided, all .yaml/.yml files are loaded and aggregated.

    Args:
        path (str): Path to a YAML file or directory.

    Returns:
        dict: Aggregated watch rules configuration with key 'watch_rules'.
    """
    if os.path.isdir(path):
        aggregated = {"watch_rules": []}
        for filename in sorted(os.listdir(path)):
            if filename.endswith((".yaml", ".yml")):
                file_path = os.path.join(path, filename)
                with open(file_path, "r") as f:
                    data = yaml.safe_load(f)
                    if data and "watch_rules" in data:
                        aggregated["watch_rules"].extend(data["watch_rules"])
        return aggregated
    else:
        return load_watch_rules_config(path)


def resolve_path(cfg, path):
    """Resolve a path from the configuration relative to the config file's directory."""
    if os.path.isabs(path):
        return path
    config_dir = os.path.dirname(cfg.get("__config_path__") or DEFAULT_CONFIG_PATH)
    return os.path.join(config_dir, path)


def get_watch_rule_specs(cfg):
    """
    Return the list of {pattern, directory} mappings for the watcher.

    The YAML rules file named by ``watch.rules_file`` replaces the inline
    ``watch.rules`` list when set.
    """
    watch = cfg.get("watch", {})
    rules_file = watch.get("rules_file")
    if rules_file:
        data = load_watch_rules_configs(resolve_path(cfg, rules_file))
        return data.get("watch_rules", [])
    return watch.get("rules", [])
