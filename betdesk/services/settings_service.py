"""
Key/value platform settings stored in system_settings
"""

import logging
from betdesk.models.betting_models import db, SystemSetting
from betdesk.errors import ValidationFailed

logger = logging.getLogger(__name__)


def get_settings_by_type(setting_type):
    if not setting_type:
        raise ValidationFailed("Setting type is required")
    return (
        SystemSetting.query
        .filter_by(setting_type=setting_type)
        .order_by(SystemSetting.setting_key)
        .all()
    )


def get_setting_value(setting_type, setting_key, default=None):
    setting = SystemSetting.query.filter_by(setting_type=setting_type, setting_key=setting_key).first()
    return setting.setting_value if setting else default


def upsert_setting(setting_type, setting_key, setting_value, commit=True):
    if not setting_type or not setting_key or setting_value in (None, ''):
        raise ValidationFailed("settingType, settingKey, and settingValue are required")

    setting = SystemSetting.query.filter_by(setting_type=setting_type, setting_key=setting_key).first()
    if setting:
        setting.setting_value = str(setting_value)
    else:
        setting = SystemSetting(
            setting_type=setting_type,
            setting_key=setting_key,
            setting_value=str(setting_value),
        )
        db.session.add(setting)

    if commit:
        db.session.commit()
    logger.info(f"Setting {setting_type}/{setting_key} updated")
    return setting


# Types written only through their own validated endpoints
RESERVED_TYPES = {
    'risk_threshold': '/api/risk/thresholds',
    'commission_default': '/api/commissions/default',
    'payment': '/api/wallet/payment-details',
}


def save_generic_setting(setting_type, setting_key, setting_value):
    """Upsert from the generic settings endpoint, which may not touch reserved types"""
    if setting_type in RESERVED_TYPES:
        raise ValidationFailed(
            f"Setting type '{setting_type}' is managed through {RESERVED_TYPES[setting_type]}"
        )
    return upsert_setting(setting_type, setting_key, setting_value)
