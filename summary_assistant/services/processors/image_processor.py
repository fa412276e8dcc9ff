import io
import logging
import threading
from typing import Callable, Iterable, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from summary_assistant.services.errors import ExtractionError

logger = logging.getLogger(__name__)

# Conditional imports based on provider
try:
    import easyocr
    EASYOCR_AVAILABLE = True
except ImportError:
    EASYOCR_AVAILABLE = False
    logger.warning("EasyOCR not available")

try:
    from paddleocr import PaddleOCR
    PADDLEOCR_AVAILABLE = True
except ImportError:
    PADDLEOCR_AVAILABLE = False
    logger.warning("PaddleOCR not available")

SUPPORTED_PROVIDERS = ("easyocr", "paddleocr")

ProgressCallback = Callable[[int], None]


class OCRService:
    """Optical character recognition over whole images.

    Images are cut into horizontal bands at blank rows and each band is
    recognised in turn, which keeps memory bounded on tall scans and gives
    a natural unit for progress reporting.
    """

    def __init__(self, provider: str = "easyocr", languages: Iterable[str] = ("en",),
                 gpu: bool = False, max_image_dimension: int = 2000,
                 band_height: int = 600, min_confidence: float = 0.3):
        self.provider = (provider or "easyocr").lower()
        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning(f"Unknown OCR provider '{self.provider}', defaulting to EasyOCR")
            self.provider = "easyocr"
        self.languages = list(languages) or ["en"]
        self.gpu = gpu
        self.max_image_dimension = max_image_dimension
        self.band_height = max(64, band_height)
        self.min_confidence = min_confidence
        self._easyocr = None  # Cached EasyOCR reader
        self._paddleocr = None  # Cached PaddleOCR instance
        self._engine_lock = threading.Lock()  # Guards lazy engine creation

    @classmethod
    def from_config(cls, config) -> "OCRService":
        return cls(
            provider=config.ocr_provider,
            languages=config.ocr_languages,
            gpu=config.ocr_gpu,
            max_image_dimension=config.ocr_max_image_dimension,
            band_height=config.ocr_band_height,
            min_confidence=config.ocr_min_confidence,
        )

    def _get_easyocr(self):
        """Initialize EasyOCR reader"""
        if self._easyocr is None:
            if not EASYOCR_AVAILABLE:
                raise ExtractionError("EasyOCR is not installed")
            logger.info(f"Initializing EasyOCR with languages {self.languages}")
            self._easyocr = easyocr.Reader(self.languages, gpu=self.gpu)
            logger.info("EasyOCR initialized successfully")
        return self._easyocr

    def _get_paddleocr(self):
        if self._paddleocr is None:
            if not PADDLEOCR_AVAILABLE:
                raise ExtractionError("PaddleOCR is not installed - install the 'paddle' extra")
            lang = self.languages[0]
            logger.info(f"Initializing PaddleOCR ({lang})")
            self._paddleocr = PaddleOCR(
                use_textline_orientation=True,
                lang=lang,
                cpu_threads=2,  # Limit CPU threads to reduce memory usage
                enable_mkldnn=False,
            )
            logger.info("PaddleOCR initialized successfully")
        return self._paddleocr

    def _get_engine(self):
        try:
            with self._engine_lock:
                if self.provider == "paddleocr":
                    return self._get_paddleocr()
                return self._get_easyocr()
        except ExtractionError:
            raise
        except Exception as e:
            logger.error(f"{self.provider} initialization failed: {e}", exc_info=True)
            raise ExtractionError(f"OCR engine failed to start: {e}") from e

    def _resize_image_if_needed(self, img: Image.Image) -> Image.Image:
        """Downscale very large images to cap memory usage."""
        width, height = img.size
        if max(width, height) <= self.max_image_dimension:
            return img
        scale = self.max_image_dimension / max(width, height)
        new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
        logger.info(f"Downscaled image from {width}x{height} to {new_size}")
        return img.resize(new_size, Image.Resampling.LANCZOS)

    def _find_safe_split_row(self, row_means: np.ndarray, target: int) -> int:
        """
        Find the blankest row near ``target``.
        Background rows are the brightest, so the row with the highest mean
        intensity in a window around the target is the safest place to cut.
        """
        window = self.band_height // 4
        start = max(1, target - window)
        end = min(len(row_means) - 1, target + window)
        if end <= start:
            return target
        split_row = start + int(np.argmax(row_means[start:end]))
        logger.debug(f"Found safe split row at y={split_row} (mean intensity: {row_means[split_row]:.1f})")
        return split_row

    def _split_image_into_bands(self, img: Image.Image) -> list[Image.Image]:
        width, height = img.size
        if height <= self.band_height * 1.5:
            return [img]

        row_means = np.asarray(img.convert("L"), dtype=np.float32).mean(axis=1)
        bands = []
        top = 0
        while height - top > self.band_height * 1.5:
            split_row = self._find_safe_split_row(row_means, top + self.band_height)
            bands.append(img.crop((0, top, width, split_row)))
            top = split_row
        bands.append(img.crop((0, top, width, height)))
        logger.debug(f"Image {width}x{height} split into {len(bands)} bands")
        return bands

    def _is_informative_band(self, band: Image.Image, min_std: float = 6.0) -> bool:
        """Skip bands that are mostly blank/flat to save time."""
        arr = np.asarray(band.convert("L"), dtype=np.float32)
        return arr.std() >= min_std

    def _recognize_band(self, engine, band: Image.Image) -> list[tuple[str, float]]:
        image_np = np.array(band)
        hits = []
        if self.provider == "paddleocr":
            result = engine.ocr(image_np)
            if result and isinstance(result, list):
                block = result[0] or {}
                for text, score in zip(block.get("rec_texts", []), block.get("rec_scores", [])):
                    hits.append((text, float(score) if score is not None else 1.0))
        else:
            # EasyOCR returns (bbox, text, confidence) per detection
            for detection in engine.readtext(image_np):
                hits.append((detection[1], float(detection[2])))

        return [
            (text.strip(), confidence)
            for text, confidence in hits
            if isinstance(text, str) and text.strip() and confidence >= self.min_confidence
        ]

    def recognize_images(self, images: list[Image.Image],
                         on_progress: Optional[ProgressCallback] = None) -> tuple[str, float]:
        """
        Recognise text on one or more images (e.g. the pages of a scan).

        Progress is reported as an integer percentage of processed bands,
        starting at 0 and ending at 100, and only once recognition is
        under way.

        Returns:
            (text, average_confidence)
        """
        engine = self._get_engine()

        bands = []
        for img in images:
            bands.extend(self._split_image_into_bands(self._resize_image_if_needed(img.convert("RGB"))))

        texts = []
        confidences = []
        if on_progress:
            on_progress(0)
        for idx, band in enumerate(bands, start=1):
            if self._is_informative_band(band):
                try:
                    hits = self._recognize_band(engine, band)
                except Exception as e:
                    logger.error(f"OCR failed on band {idx}/{len(bands)}: {e}", exc_info=True)
                    raise ExtractionError(f"OCR failed: {e}") from e
                for text, confidence in hits:
                    texts.append(text)
                    confidences.append(confidence)
            else:
                logger.debug(f"Skipping band {idx}: low variance (likely blank)")
            if on_progress:
                on_progress(round(idx * 100 / len(bands)))

        avg_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        logger.info(f"{self.provider} extracted {len(texts)} text blocks from {len(bands)} bands, "
                    f"confidence: {avg_confidence:.2f}")
        return "\n".join(texts), avg_confidence

    def extract_text(self, image_bytes: bytes,
                     on_progress: Optional[ProgressCallback] = None) -> tuple[str, float]:
        """Extract text from encoded image bytes. Returns (text, average_confidence)"""
        try:
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ExtractionError(f"Invalid image file: {e}") from e
        return self.recognize_images([img], on_progress)
