#!/usr/bin/env python3
"""
Image compression for Dressmart uploads.

Used by the upload endpoint for each new image, and as a command line tool
to shrink images already sitting in the upload folder.
"""

import argparse
import logging
import sys
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}


def compress_image(image_path, max_width=800, max_height=800, quality=85, optimize=True):
    """
    Compress a single image file in place

    Args:
        image_path (str): Path to the image file
        max_width (int): Maximum width in pixels
        max_height (int): Maximum height in pixels
        quality (int): JPEG/WebP quality (1-100, higher = better quality)
        optimize (bool): Whether to optimize the image

    Returns:
        tuple: (success, original_size, compressed_size, filename)
    """
    image_path = Path(image_path)
    if not image_path.exists():
        return False, 0, 0, image_path.name

    original_size = image_path.stat().st_size
    suffix = image_path.suffix.lower()

    try:
        with Image.open(image_path) as img:
            img.load()

            # JPEG has no alpha channel, flatten onto white
            if suffix in ('.jpg', '.jpeg') and img.mode in ('RGBA', 'LA', 'P'):
                rgba = img.convert('RGBA')
                background = Image.new('RGB', rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[-1])
                img = background

            img.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)

            if suffix in ('.jpg', '.jpeg'):
                img.save(image_path, 'JPEG', quality=quality, optimize=optimize)
            elif suffix == '.png':
                img.save(image_path, 'PNG', optimize=optimize)
            elif suffix == '.gif':
                img.save(image_path, 'GIF', optimize=optimize)
            else:
                img.save(image_path, quality=quality)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning('Could not compress %s: %s', image_path, e)
        return False, original_size, original_size, image_path.name

    return True, original_size, image_path.stat().st_size, image_path.name


def find_images(folder):
    folder = Path(folder)
    return sorted(path for path in folder.iterdir()
                  if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS)


def compress_folder(folder, max_width=800, max_height=800, quality=85):
    """Compress every image in ``folder``; returns the per-file results"""
    return [compress_image(path, max_width=max_width, max_height=max_height, quality=quality)
            for path in find_images(folder)]


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Compress images in the Dressmart uploads folder'
    )
    parser.add_argument(
        '--folder',
        default='upload/images',
        help='Folder to compress images in (default: upload/images)'
    )
    parser.add_argument(
        '--width',
        type=int,
        default=800,
        help='Max image width in pixels (default: 800)'
    )
    parser.add_argument(
        '--height',
        type=int,
        default=800,
        help='Max image height in pixels (default: 800)'
    )
    parser.add_argument(
        '--quality',
        type=int,
        default=85,
        help='JPEG quality 1-100 (default: 85)'
    )

    args = parser.parse_args(argv)

    folder = Path(args.folder)
    if not folder.is_dir():
        print(f"Folder not found: {folder}", file=sys.stderr)
        return 1

    images = find_images(folder)
    if not images:
        print(f"No images found in {folder}")
        return 0

    print(f"Found {len(images)} images in {folder}")
    print(f"Settings: {args.width}x{args.height}px, Quality: {args.quality}")
    print("-" * 70)

    total_original = 0
    total_compressed = 0
    failed = 0

    for i, image_path in enumerate(images, 1):
        success, orig_size, comp_size, filename = compress_image(
            image_path,
            max_width=args.width,
            max_height=args.height,
            quality=args.quality
        )

        if success:
            total_original += orig_size
            total_compressed += comp_size
            reduction = ((orig_size - comp_size) / orig_size * 100) if orig_size > 0 else 0
            print(f"[{i:3d}/{len(images)}] {filename:<50} "
                  f"{orig_size / 1024:8.1f}KB -> {comp_size / 1024:8.1f}KB ({reduction:5.1f}%)")
        else:
            print(f"[{i:3d}/{len(images)}] {filename:<50} FAILED")
            failed += 1

    total_reduction = ((total_original - total_compressed) / total_original * 100) \
        if total_original > 0 else 0

    print("-" * 70)
    print(f"Compressed: {len(images) - failed}, failed: {failed}")
    print(f"Total: {total_original / 1024:.1f}KB -> {total_compressed / 1024:.1f}KB ({total_reduction:.1f}%)")
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
