from .draw import LastDetections, draw_detections

__all__ = ["LastDetections", "draw_detections"]
