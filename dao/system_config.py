"""System configuration store: typed key/value settings managed by ADMIN."""
import json
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from configs import db
from dao import audit as audit_dao
from db.models.system_config import ConfigType, SystemConfig
from utils.errors import Conflict, Forbidden, NotFound, ValidationError
from utils.helpers import dec

log = logging.getLogger(__name__)

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _config_type(value) -> ConfigType:
    if isinstance(value, ConfigType):
        return value
    try:
        return ConfigType((value or "STRING").upper())
    except ValueError:
        raise ValidationError(f"Unknown config type: {value!r}", field="type")


def _encode(cfg_type: ConfigType, value, key: str, rules: Optional[dict] = None) -> Optional[str]:
    """Check `value` against the config type and rules, return its stored text."""
    if value is None:
        return None
    if cfg_type == ConfigType.NUMBER:
        num = dec(value, key)
        rules = rules or {}
        if rules.get("min") is not None and num < dec(rules["min"]):
            raise ValidationError(f"{key} must be at least {rules['min']}", key=key)
        if rules.get("max") is not None and num > dec(rules["max"]):
            raise ValidationError(f"{key} must be at most {rules['max']}", key=key)
        return str(num)
    if cfg_type == ConfigType.BOOLEAN:
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip().lower()
        if text in _TRUE:
            return "true"
        if text in _FALSE:
            return "false"
        raise ValidationError(f"{key} must be a boolean", key=key)
    if cfg_type in (ConfigType.JSON, ConfigType.ARRAY):
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                raise ValidationError(f"Invalid JSON for {key}", key=key)
        if cfg_type == ConfigType.ARRAY and not isinstance(value, list):
            raise ValidationError(f"{key} must be an array", key=key)
        return json.dumps(value)
    return str(value)


def typed_value(cfg: SystemConfig):
    if cfg.value is None:
        return None
    if cfg.type == ConfigType.NUMBER:
        return Decimal(cfg.value)
    if cfg.type == ConfigType.BOOLEAN:
        return cfg.value == "true"
    if cfg.type in (ConfigType.JSON, ConfigType.ARRAY):
        return json.loads(cfg.value)
    return cfg.value


def list_configs(category: str | None = None, is_public: bool | None = None) -> List[SystemConfig]:
    q = SystemConfig.query
    if category:
        q = q.filter(SystemConfig.category == category.upper())
    if is_public is not None:
        q = q.filter(SystemConfig.is_public == is_public)
    return q.order_by(SystemConfig.category.asc(), SystemConfig.key.asc()).all()


def get_config(key: str) -> SystemConfig:
    cfg = SystemConfig.query.filter_by(key=key).one_or_none()
    if cfg is None:
        raise NotFound("Configuration", key)
    return cfg


def get_public_config(key: str) -> SystemConfig:
    cfg = get_config(key)
    if not cfg.is_public:
        raise Forbidden(f"Configuration {key} is not public", key=key)
    return cfg


def config_value(key: str, default=None):
    cfg = SystemConfig.query.filter_by(key=key).one_or_none()
    return default if cfg is None else typed_value(cfg)


def create_config(
    key: str,
    value=None,
    value_type=ConfigType.STRING,
    category: str = "GENERAL",
    description: str | None = None,
    is_editable: bool = True,
    is_public: bool = False,
    validation_rules: dict | None = None,
    created_by: int | None = None,
) -> SystemConfig:
    key = (key or "").strip()
    if not key:
        raise ValidationError("Configuration key is required", field="key")
    if SystemConfig.query.filter_by(key=key).count():
        raise Conflict(f"Configuration {key} already exists", key=key)
    cfg_type = _config_type(value_type)
    cfg = SystemConfig(
        key=key,
        value=_encode(cfg_type, value, key, validation_rules),
        type=cfg_type,
        category=(category or "GENERAL").upper(),
        description=description,
        is_editable=bool(is_editable),
        is_public=bool(is_public),
        validation_rules=validation_rules,
        created_by=created_by,
        updated_by=created_by,
    )
    db.session.add(cfg)
    db.session.flush()
    audit_dao.log_action(created_by, "CREATE", "SYSTEM_CONFIG", cfg.id, {"key": key})
    _commit()
    return cfg


def set_config(key: str, value, user_id: int | None = None) -> SystemConfig:
    cfg = get_config(key)
    if not cfg.is_editable:
        raise Conflict(f"Configuration {key} is not editable", key=key)
    old = cfg.value
    cfg.value = _encode(cfg.type, value, key, cfg.validation_rules)
    cfg.updated_by = user_id
    audit_dao.log_action(user_id, "UPDATE", "SYSTEM_CONFIG", cfg.id, {"key": key, "old": old, "new": cfg.value})
    _commit()
    log.info("config %s set to %s by user %s", key, cfg.value, user_id)
    return cfg


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
