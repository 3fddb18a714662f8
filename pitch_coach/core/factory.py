"""Factory for creating Pitch Coach components."""

import random
from typing import Dict, Optional, Type

from ..logger import get_logger
from ..audio.audio_input import SoundDeviceInput
from ..audio.audio_providers import WavFileAudioInput
from ..audio.pitch_detection_service import PitchDetectionService
from ..audio.tone_player import SoundDeviceTonePlayer
from ..detection.pitch_estimator import PitchEstimator
from ..detection.stability_analyzer import AggregatorSettings, PitchSampleAggregator
from ..ear_trainer import EarTrainingChallenge
from ..voice_classifier import VocalRangeClassifier
from .config import ConfigManager, TimingSettings
from .events import EngineEvents
from .interfaces import IAudioInput, IScheduler, ITonePlayer

logger = get_logger(__name__)


class ComponentFactory:
    """Builds the engine's components from the stored configuration."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        self.audio_input_classes: Dict[str, Type[IAudioInput]] = {
            "default": SoundDeviceInput,
            "wav": WavFileAudioInput,
        }

    def create_estimator(self, **kwargs) -> PitchEstimator:
        config = self.config_manager.get_config("pitch_detection")
        threshold = kwargs.get("threshold", config["threshold"])
        return PitchEstimator(threshold=threshold)

    def create_aggregator_settings(self, **kwargs) -> AggregatorSettings:
        config = self.config_manager.get_config("aggregator")
        config["min_confidence"] = self.config_manager.get_config("pitch_detection")[
            "min_confidence"
        ]
        config.update(kwargs)
        return AggregatorSettings(
            min_confidence=float(config["min_confidence"]),
            mode_share=float(config["mode_share"]),
            ear_min_samples=int(config["ear_min_samples"]),
            range_min_samples=int(config["range_min_samples"]),
            in_tune_cents=float(config["in_tune_cents"]),
        )

    def create_aggregator(self, **kwargs) -> PitchSampleAggregator:
        return PitchSampleAggregator(self.create_aggregator_settings(**kwargs))

    def create_timing(self, **kwargs) -> TimingSettings:
        config = self.config_manager.get_config("timing")
        config.update(kwargs)
        return TimingSettings(
            pre_listen_seconds=float(config["pre_listen_seconds"]),
            analysis_seconds=float(config["analysis_seconds"]),
            range_test_seconds=float(config["range_test_seconds"]),
        )

    def create_audio_input(self, implementation: str = "default", **kwargs) -> IAudioInput:
        """Create an audio input.

        Args:
            implementation: "default" for the microphone, "wav" for a file
            **kwargs: Additional parameters to pass to the constructor

        Returns:
            Audio input instance

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.audio_input_classes:
            raise ValueError(f"Unknown audio input implementation: {implementation}")

        cls = self.audio_input_classes[implementation]
        if implementation == "default":
            config = self.config_manager.get_config("audio_input")
            config.update(kwargs)
            kwargs = config
        instance = cls(**kwargs)

        logger.info(f"Created audio input: {implementation}")
        return instance

    def create_tone_player(self, **kwargs) -> ITonePlayer:
        sample_rate = self.config_manager.get_config("audio_input")["sample_rate"]
        kwargs.setdefault("sample_rate", sample_rate)
        kwargs.setdefault("duration", self.config_manager.get_config("timing")["pre_listen_seconds"])
        return SoundDeviceTonePlayer(**kwargs)

    def create_detection_service(
        self,
        scheduler: IScheduler,
        audio_input: Optional[IAudioInput] = None,
        events: Optional[EngineEvents] = None,
    ) -> PitchDetectionService:
        """Create a capture session, building the audio input if not given."""
        volume_scale = self.config_manager.get_config("pitch_detection")["volume_scale"]
        service = PitchDetectionService(
            audio_input=audio_input or self.create_audio_input(),
            scheduler=scheduler,
            estimator=self.create_estimator(),
            events=events,
            volume_scale=volume_scale,
        )
        logger.info("Created pitch detection service")
        return service

    def create_challenge(
        self,
        session: PitchDetectionService,
        scheduler: IScheduler,
        tone_player: Optional[ITonePlayer] = None,
        rng: Optional[random.Random] = None,
        device_id: Optional[int] = None,
    ) -> EarTrainingChallenge:
        return EarTrainingChallenge(
            session,
            scheduler,
            tone_player or self.create_tone_player(),
            aggregator=self.create_aggregator(),
            timing=self.create_timing(),
            rng=rng,
            device_id=device_id,
        )

    def create_classifier(
        self,
        session: PitchDetectionService,
        scheduler: IScheduler,
        device_id: Optional[int] = None,
    ) -> VocalRangeClassifier:
        return VocalRangeClassifier(
            session,
            scheduler,
            aggregator=self.create_aggregator(),
            timing=self.create_timing(),
            device_id=device_id,
        )
