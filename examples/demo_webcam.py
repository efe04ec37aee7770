#!/usr/bin/env python3
"""Live webcam demo: teach a sign, then recognize it.

Usage:
    python examples/demo_webcam.py --train hello   # record 5 samples of "hello"
    python examples/demo_webcam.py                 # recognize stored signs
    python examples/demo_webcam.py --list
    python examples/demo_webcam.py --delete hello
"""

import argparse
import logging
import sys

import cv2

from sign_engine import EngineConfig, HandDetector, RecognitionEvent, SignPipeline


def draw_overlay(frame, pipeline: SignPipeline, last: RecognitionEvent | None):
    """Draw mode, status and the last recognized sign on the frame."""
    session = pipeline.session
    if session is not None:
        text = f"Training '{session.name}': {session.collected}/{session.samples_needed}"
    else:
        text = f"{pipeline.mode.value} | {pipeline.status}"

    cv2.putText(frame, text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)

    if last is not None:
        label = f"{last.gesture} ({last.confidence:.0f}%)"
        cv2.putText(frame, label, (10, 70), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 255, 255), 2)

    return frame


def main():
    parser = argparse.ArgumentParser(description="SignEngine Webcam Demo")
    parser.add_argument("--config", default="sign_engine.yml", help="YAML config path")
    parser.add_argument("--camera", type=int, default=0, help="Camera index")
    parser.add_argument("--train", metavar="NAME", help="Teach a new sign")
    parser.add_argument("--list", action="store_true", help="List stored signs")
    parser.add_argument("--delete", metavar="NAME", help="Delete a stored sign")
    parser.add_argument("--no-display", action="store_true", help="Run headless")
    parser.add_argument("--verbose", action="store_true", help="Log similarity scores")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    config = EngineConfig.from_yaml(args.config)
    store = config.open_store()

    if args.list:
        for pattern in store.list():
            print(f"  {pattern.name}: {pattern.sample_count} samples")
        return

    if args.delete:
        store.delete(args.delete)
        return

    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        print(f"Error: Cannot open camera {args.camera}")
        sys.exit(1)

    print("Press 'q' to quit\n")
    last: RecognitionEvent | None = None

    with SignPipeline(store, config, source=HandDetector()) as pipeline:
        pipeline.on_recognition(lambda e: print(f"  🤚 {e.gesture} ({e.confidence:.0f}%)"))
        pipeline.on_pattern_saved(
            lambda p: print(f"  ✅ Saved '{p.name}' with {p.sample_count} samples")
        )

        if args.train:
            pipeline.start_training(args.train)
        else:
            pipeline.start_recognition()

        while True:
            ret, frame = cap.read()
            if not ret:
                break

            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            event = pipeline.process_frame(frame_rgb)
            if event is not None:
                last = event

            if args.train and pipeline.session is None:
                break

            if not args.no_display:
                frame = draw_overlay(frame, pipeline, last)
                cv2.imshow("SignEngine", frame)

                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break

    cap.release()
    cv2.destroyAllWindows()

    stats = pipeline.stats
    print(f"\nProcessed {stats['total_samples']} frames, {stats['total_recognitions']} recognitions")


if __name__ == "__main__":
    main()
