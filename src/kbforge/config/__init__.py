from kbforge.config.pipeline import PipelineConfig
from kbforge.config.settings import Settings, load_settings

__all__ = ["PipelineConfig", "Settings", "load_settings"]
