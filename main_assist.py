from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import cv2

from sightguide.assist import AssistController
from sightguide.config import load_config, load_labels, resolve_config_path
from sightguide.detect import rotate_frame, try_build_detector
from sightguide.io_video import FrameSource
from sightguide.runtime import DetectionService
from sightguide.speech import build_speech
from sightguide.vis import draw_detections


def parse_args():
    parser = argparse.ArgumentParser(description="Spoken object guidance")
    parser.add_argument("--config", type=str, default=None, help="config file, defaults to configs/default.yaml")
    parser.add_argument("--target", type=str, default=None, help="start guidance towards this object")
    parser.add_argument("--no-window", action="store_true", help="run without a preview window")
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=str, default=None, help="also write a session log file")
    return parser.parse_args()


def setup_logging(level: str, log_file: Optional[str]) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
    )


def run(cfg: dict, args) -> None:
    cam_cfg = cfg.get("camera", {}) or {}
    det_cfg = cfg.get("detect", {}) or {}
    runtime_cfg = cfg.get("runtime", {}) or {}
    speech_cfg = cfg.get("speech", {}) or {}
    draw_cfg = (cfg.get("vis", {}) or {}).get("draw", {}) or {}

    speech = build_speech(speech_cfg)
    detector = try_build_detector(cfg)
    if detector is None:
        print("⚠️ Detection disabled, camera and manual controls keep running")
    controller = AssistController.from_config(speech, cfg, detection_available=detector is not None)
    service = DetectionService.from_config(detector, runtime_cfg) if detector is not None else None

    try:
        labels = list(load_labels(det_cfg.get("labels")).values())
    except FileNotFoundError:
        labels = []
    synonyms = {str(k): str(v) for k, v in (speech_cfg.get("synonyms") or {}).items()}
    if args.target:
        controller.find(args.target, labels, synonyms)

    source = FrameSource(cam_cfg)
    if not source.is_opened():
        print("⚠️ Frame source did not open, check the camera config")
    show = not args.no_window

    try:
        for frame in source:
            if service is not None:
                service.submit(frame.image, frame.rotation_deg)
                packet = service.get_result(timeout=0.0)
                while packet is not None:
                    controller.on_detections(packet.detections, packet.frame_w, packet.frame_h)
                    packet = service.get_result(timeout=0.0)

            if not show:
                continue
            view = frame.image.copy()
            if frame.rotation_deg:
                view = rotate_frame(view, frame.rotation_deg)
            if draw_cfg.get("det", True):
                draw_detections(
                    view,
                    controller.last.get(),
                    thickness=int(draw_cfg.get("thickness", 2)),
                    font_scale=float(draw_cfg.get("font_scale", 0.6)),
                )
            cv2.imshow("sightguide", view)

            key = cv2.waitKey(1) & 0xFF
            if key in (27, ord("q")):
                break
            if key == ord("s"):
                controller.speak_now()
            elif key == ord("a"):
                controller.toggle_auto()
            elif key == ord("h"):
                print(f"ℹ️ hide unknown: {controller.toggle_hide_unknown()}")
            elif key == ord("x"):
                controller.stop_guidance()
            elif key == ord("f"):
                if controller.guidance.is_active():
                    controller.stop_guidance()
                else:
                    controller.find(input("Object to find: "), labels, synonyms)
    except KeyboardInterrupt:
        pass
    finally:
        if service is not None:
            service.close()
            dropped = service.throttle.dropped_frames
            if dropped or service.failed_cycles:
                print(f"ℹ️ dropped frames {dropped}, failed cycles {service.failed_cycles}")
        speech.close()
        source.release()
        if show:
            cv2.destroyAllWindows()


def main():
    args = parse_args()
    setup_logging(args.log_level, args.log_file)
    cfg_path = resolve_config_path(args.config)
    cfg = load_config(str(cfg_path))
    run(cfg, args)


if __name__ == "__main__":
    main()
