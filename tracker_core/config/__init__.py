from tracker_core.config.settings import TrackerConfig, load_config

__all__ = ["TrackerConfig", "load_config"]
