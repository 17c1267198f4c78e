"""
Detection Provider Base Interface.

Defines the contract for image label/object detectors.
"""

from abc import ABC, abstractmethod
from typing import Dict

from app.models.evidence import DetectionResult


class DetectionProvider(ABC):
    """
    Abstract base class for image detectors.

    Contract:
    - Input: bucket path of the evidence image
    - Output: DetectionResult with (label, score) and (object name, score) pairs
    - On any failure (network, quota, timeout, bad image) raise UpstreamDegraded
    - Respect get_timeout_seconds() for every remote call
    """

    @abstractmethod
    def detect(self, image_path: str) -> DetectionResult:
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, str]:
        """
        Returns:
            Dict with 'name' and 'version' keys
        """
        pass

    @abstractmethod
    def get_timeout_seconds(self) -> float:
        pass
