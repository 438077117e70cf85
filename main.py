#!/usr/bin/env python
"""
laserweed - per-frame plant and laser aim analysis.

Main entry point for analysing single images.

Usage
-----
    python main.py image.png [image2.png ...] [--config params.json]
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for laserweed.

    Parameters
    ----------
    argv : list[str], optional
        Command line arguments, ``sys.argv[1:]`` when omitted.

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error).
    """
    import cv2
    from loguru import logger

    from laserweed.config import load_config
    from laserweed.core.frame_analysis import FrameAnalysis

    parser = argparse.ArgumentParser(description="Detect plants and laser aim in images.")
    parser.add_argument("images", nargs="+", help="Image files to analyse")
    parser.add_argument("--config", default=None, help="JSON pipeline configuration")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    args = parser.parse_args(argv)

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        level=args.log_level.upper(),
    )

    config = load_config(args.config)
    exit_code = 0
    for image_path in args.images:
        frame = cv2.imread(image_path, cv2.IMREAD_COLOR)
        if frame is None:
            logger.error(f"Cannot read image: {image_path}")
            exit_code = 1
            continue
        summary = FrameAnalysis(frame, image_path, config).summary()
        logger.info(
            f"{summary['image_name']} aim={summary['aim_point'] or '-'} "
            f"laser={summary['laser_state']} plants={summary['plant_centers'] or '-'}"
        )

    logger.info(f"Analysed {len(args.images)} images, exit code: {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
