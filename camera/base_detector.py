"""Base protocol for facial landmark detectors."""

from typing import Protocol, List, Any

from camera.gaze import Keypoint


class LandmarkDetectorProtocol(Protocol):
    """
    Protocol defining the interface for landmark detectors.
    
    Any detector (MediaPipe, a remote model, a test fake) plugged into
    FaceFocusEngine must implement these methods.
    """
    
    def detect(self, frame: Any) -> List[Keypoint]:
        """
        Detect facial landmarks for the most prominent face in a frame.
        
        Args:
            frame: Image from camera (BGR numpy array for OpenCV sources)
        
        Returns:
            Keypoints of the first face, or an empty list if no face found.
            May raise; callers treat any exception as "no face".
        """
        ...
    
    def close(self) -> None:
        """Release model resources."""
        ...
