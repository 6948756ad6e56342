"""Facial landmark detection using MediaPipe Face Mesh."""

import cv2
import mediapipe as mp
import numpy as np
import logging
from typing import List, Optional

import config
from camera.gaze import Keypoint, LANDMARK_INDICES

logger = logging.getLogger(__name__)

# Reverse lookup so the gaze landmarks carry their names
_NAMES_BY_INDEX = {index: name for name, index in LANDMARK_INDICES.items()}


class MediaPipeLandmarkDetector:
    """
    Detects facial landmarks with MediaPipe Face Mesh.
    
    Returns landmarks in pixel coordinates of the (optionally mirrored)
    frame so geometric ratios are not distorted by the aspect ratio.
    """
    
    def __init__(self, mirrored: bool = True, min_detection_confidence: Optional[float] = None):
        """
        Initialize the Face Mesh solution.
        
        Args:
            mirrored: Flip frames horizontally before inference
            min_detection_confidence: Detection threshold (defaults to config.FACE_DETECTION_CONFIDENCE)
        """
        self.mirrored = mirrored
        
        self.mp_face_mesh = mp.solutions.face_mesh
        self.face_mesh = self.mp_face_mesh.FaceMesh(
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=min_detection_confidence or config.FACE_DETECTION_CONFIDENCE,
            min_tracking_confidence=0.5
        )
        
        logger.info("MediaPipe Face Mesh detector initialized")
    
    def close(self) -> None:
        """Clean up MediaPipe resources."""
        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.close()
    
    def _prepare_frame(self, frame: np.ndarray) -> np.ndarray:
        """
        Downscale to at most FRAME_WIDTH, mirror if requested, convert to RGB.
        
        Args:
            frame: BGR image from camera
        
        Returns:
            RGB image ready for MediaPipe
        """
        h, w = frame.shape[:2]
        if w > config.FRAME_WIDTH:
            scale = config.FRAME_WIDTH / w
            frame = cv2.resize(frame, (config.FRAME_WIDTH, int(round(h * scale))))
        
        if self.mirrored:
            frame = cv2.flip(frame, 1)
        
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    
    def detect(self, frame: np.ndarray) -> List[Keypoint]:
        """
        Detect landmarks for the first face in the frame.
        
        Args:
            frame: BGR image from camera
        
        Returns:
            List of Keypoints indexed like Face Mesh, empty if no face
        """
        if self.face_mesh is None:
            raise RuntimeError("Detector has been closed")
        
        rgb_frame = self._prepare_frame(frame)
        h, w = rgb_frame.shape[:2]
        
        results = self.face_mesh.process(rgb_frame)
        
        if not results.multi_face_landmarks:
            return []
        
        face_landmarks = results.multi_face_landmarks[0]
        
        keypoints = []
        for index, landmark in enumerate(face_landmarks.landmark):
            keypoints.append(Keypoint(
                x=landmark.x * w,
                y=landmark.y * h,
                z=landmark.z * w,
                name=_NAMES_BY_INDEX.get(index)
            ))
        
        return keypoints
