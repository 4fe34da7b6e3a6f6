"""
Container image reference helpers.

Image references look like ``[registry[:port]/]repository[:tag][@digest]``.
Only the last path segment may carry a tag, so a colon before the final slash
belongs to a registry host port.
"""

from typing import Tuple

DEFAULT_REGISTRY = "registry-1.docker.io"


def split_tag(image: str) -> Tuple[str, str]:
    """
    Split an image reference into its repository and tag.

    Args:
        image: Image reference (e.g., "registry:5000/acme/app:1.4")

    Returns:
        Tuple of (repository, tag). The tag is empty when none is present.
    """
    name = image.split("@", 1)[0]
    colon = name.rfind(":")
    if colon > name.rfind("/"):
        return name[:colon], name[colon + 1 :]
    return name, ""


def rewrite_image_tag(image: str, version: str) -> str:
    """
    Point an image reference at a different tag.

    Any digest is dropped since it would pin the old build.

    Args:
        image: Image reference, usually "repo/image:tag"
        version: Tag to use instead

    Returns:
        The image reference with its tag replaced, e.g. "acme/app:1.4" -> "acme/app:2.0"
    """
    repository, _ = split_tag(image)
    return f"{repository}:{version}"


def parse_image_reference(image_ref: str) -> Tuple[str, str, str]:
    """
    Parse image reference into registry, repository, and tag.

    Args:
        image_ref: Full image reference

    Returns:
        Tuple of (registry, repository, tag)
    """
    # Handle image references with or without protocol
    if "://" in image_ref:
        image_ref = image_ref.split("://", 1)[1]

    # Split registry from the rest
    parts = image_ref.split("/", 1)
    if len(parts) == 2 and ("." in parts[0] or ":" in parts[0] or parts[0] == "localhost"):
        registry = parts[0]
        remainder = parts[1]
    else:
        # Default to Docker Hub
        registry = DEFAULT_REGISTRY
        remainder = image_ref
        if "/" not in remainder:
            remainder = f"library/{remainder}"

    if "@" in remainder:
        repository, tag = remainder.split("@", 1)
    else:
        repository, tag = split_tag(remainder)

    return registry, repository, tag or "latest"
