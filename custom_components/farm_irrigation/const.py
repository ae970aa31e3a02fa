"""Constants for Farm Irrigation integration."""
from __future__ import annotations

from datetime import timedelta
from typing import Final

DOMAIN: Final = "farm_irrigation"
NAME: Final = "Farm Irrigation"

# Configuration keys
CONF_WEATHER_ENTITY: Final = "weather_entity"
CONF_LOCATION_LAT: Final = "latitude"
CONF_LOCATION_LON: Final = "longitude"

# Zone attributes
ATTR_ZONE_ID: Final = "zone_id"
ATTR_NAME: Final = "name"
ATTR_CROP_TYPE: Final = "crop_type"
ATTR_AREA: Final = "area"
ATTR_SOIL_TYPE: Final = "soil_type"
ATTR_IRRIGATION_METHOD: Final = "irrigation_method"
ATTR_FLOW_RATE: Final = "flow_rate"
ATTR_DURATION: Final = "duration"
ATTR_PRIORITY: Final = "priority"
ATTR_CURRENT_MOISTURE: Final = "current_moisture"
ATTR_TARGET_MOISTURE: Final = "target_moisture"
ATTR_IS_ACTIVE: Final = "is_active"
ATTR_LAST_WATERED: Final = "last_watered"

# Schedule / settings attributes
ATTR_SCHEDULE_ID: Final = "schedule_id"
ATTR_HOURS: Final = "hours"
ATTR_ACTIVE: Final = "active"

# Soil drainage rate: how fast moisture is lost per tick
SOIL_DRAINAGE: Final = {
    "sandy": 1.5,
    "clay": 0.7,
    "loamy": 1.0,
    "silt": 0.9,
    "red": 1.2,
    "black": 0.8,
    "alluvial": 1.0,
}

# Soil retention: duration multiplier when irrigating
SOIL_RETENTION: Final = {
    "sandy": 0.8,
    "clay": 1.2,
    "loamy": 1.0,
    "silt": 1.1,
    "red": 0.9,
    "black": 1.1,
    "alluvial": 1.0,
}

# Crop water needs (duration multiplier, matched case-insensitively)
CROP_WATER_NEEDS: Final = {
    "rice": 1.3,
    "wheat": 1.0,
    "corn": 1.2,
    "tomato": 1.4,
    "potato": 1.1,
    "cotton": 1.2,
    "sugarcane": 1.5,
}

# Irrigation method efficiency (duration multiplier)
METHOD_EFFICIENCY: Final = {
    "drip": 1.0,
    "sprinkler": 1.2,
    "flood": 1.5,
    "manual": 1.3,
}

# Moisture model
MOISTURE_MIN: Final = 10
MOISTURE_MAX: Final = 95
BASE_DECAY_MIN: Final = 2.0
BASE_DECAY_MAX: Final = 5.0
RECENT_WATERING_WINDOW: Final = timedelta(hours=2)
RECENT_WATERING_BONUS: Final = 10
INITIAL_MOISTURE_MIN: Final = 50
INITIAL_MOISTURE_MAX: Final = 70
INITIAL_LAST_WATERED_AGE: Final = timedelta(hours=24)
MAX_REPLENISHMENT: Final = 30

# Weather effects on the moisture model
HOT_TEMPERATURE: Final = 30  # °C
DRY_AIR_HUMIDITY: Final = 40  # %
WINDY_SPEED: Final = 15  # km/h
RAIN_REPLENISHMENT: Final = 10
RAIN_CONDITIONS: Final = ("rain", "pouring")

# Need evaluation thresholds
DEFICIT_HIGH: Final = 30
DEFICIT_MEDIUM: Final = 15
LOW_URGENCY_MIN_DURATION: Final = 15
EXTREME_TEMPERATURE: Final = 35  # °C
LOW_HUMIDITY: Final = 30  # %
STRONG_WIND: Final = 20  # km/h
FORECAST_DAYS: Final = 3
FORECAST_RAIN_SIGNAL: Final = 30
RAIN_EXPECTED_MIN_DURATION: Final = 10
MIN_DURATION: Final = 5
REASON_RAIN_EXPECTED: Final = "Rain expected - irrigation not needed"
REASON_ROUTINE: Final = "Routine maintenance"

# Scheduling
HIGH_URGENCY_LEAD_TIME: Final = timedelta(minutes=30)
MORNING_JITTER_MINUTES: Final = 120
CONFLICT_WINDOW: Final = timedelta(hours=1)
WATER_AMOUNT_DIVISOR: Final = 10
MAX_SCHEDULE_HISTORY: Final = 100
REASON_MANUAL: Final = "Manual activation"
REASON_ZONE_REMOVED: Final = "zone removed"

# Settings defaults and bounds
DEFAULT_AUTO_SCHEDULING: Final = True
DEFAULT_WEATHER_INTEGRATION: Final = True
DEFAULT_MOISTURE_THRESHOLD: Final = 40
DEFAULT_RAIN_DELAY: Final = 24  # hours
DEFAULT_MAX_DAILY_WATERING: Final = 60  # minutes per zone
DEFAULT_EARLY_MORNING_START: Final = "06:00"
DEFAULT_EVENING_END: Final = "20:00"
DEFAULT_NOTIFICATIONS: Final = True
MOISTURE_THRESHOLD_MIN: Final = 20
MOISTURE_THRESHOLD_MAX: Final = 80
TARGET_MOISTURE_MIN: Final = 30
TARGET_MOISTURE_MAX: Final = 90
MAX_DAILY_WATERING_LIMIT: Final = 480
RAIN_DELAY_LIMIT: Final = 168

# Zone defaults
DEFAULT_AREA: Final = 1.0
DEFAULT_SOIL_TYPE: Final = "loamy"
DEFAULT_IRRIGATION_METHOD: Final = "drip"
DEFAULT_FLOW_RATE: Final = 100.0
DEFAULT_DURATION: Final = 30
DEFAULT_PRIORITY: Final = "medium"
DEFAULT_TARGET_MOISTURE: Final = 60

# Tick intervals
MOISTURE_TICK_INTERVAL: Final = timedelta(minutes=30)
AUTO_SCHEDULE_INTERVAL: Final = timedelta(minutes=60)
DUE_CHECK_INTERVAL: Final = timedelta(seconds=10)
WEATHER_UPDATE_INTERVAL: Final = timedelta(minutes=30)
ACTIVE_PHASE_SECONDS: Final = 2

# Weather provider
WEATHER_TIMEOUT: Final = 30
OPEN_METEO_URL: Final = "https://api.open-meteo.com/v1/forecast"

# Storage
STORAGE_KEY: Final = DOMAIN
STORAGE_VERSION: Final = 1
SAVE_DELAY: Final = 5  # seconds

# Notifications
EVENT_NOTIFICATION: Final = f"{DOMAIN}_notification"
SEVERITY_INFO: Final = "info"
SEVERITY_SUCCESS: Final = "success"
SEVERITY_WARNING: Final = "warning"

# Service names
SERVICE_UPSERT_ZONE: Final = "upsert_zone"
SERVICE_DELETE_ZONE: Final = "delete_zone"
SERVICE_SET_ZONE_ACTIVE: Final = "set_zone_active"
SERVICE_TRIGGER_MANUAL_WATER: Final = "trigger_manual_water"
SERVICE_CANCEL_SCHEDULE: Final = "cancel_schedule"
SERVICE_UPDATE_SETTINGS: Final = "update_settings"
SERVICE_GENERATE_SCHEDULE: Final = "generate_schedule"
SERVICE_SET_RAIN_DELAY: Final = "set_rain_delay"
SERVICE_CANCEL_RAIN_DELAY: Final = "cancel_rain_delay"
