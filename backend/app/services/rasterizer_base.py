"""
AGE-MATE Tracking Backend — Rasterizer Interface
=================================================

What:  Abstract contract for turning a PDF receipt into image bytes.
Why:   The receipt renderer should not depend on a particular rasterization
       backend. PyMuPDF is the default; tests and alternative deployments can
       inject anything that satisfies this interface.
How:   Concrete implementations inherit from Rasterizer and implement
       rasterize().
"""

from abc import ABC, abstractmethod


class Rasterizer(ABC):
    """
    Converts document bytes into image bytes.

    Contract:
        - rasterize() is pure: same input bytes, same output bytes
        - it is safe to call from worker threads concurrently
        - backend-specific failures may propagate; ReceiptRenderer wraps them
          in RenderError
    """

    #: MIME type of the produced image, used for the HTTP response
    media_type: str = "image/jpeg"

    #: File extension (without dot) used in the download filename
    extension: str = "jpg"

    @abstractmethod
    def rasterize(self, document: bytes) -> bytes:
        """
        Render the first page of `document` (a PDF) to an image.

        Returns:
            Encoded image bytes (never empty on success).
        """
        ...
