# prompt_architect/data/constants.py
from enum import Enum


class ImageSlot(str, Enum):
    """The two upload slots a session holds."""
    PORTRAIT = "portrait"
    PRODUCT = "product"


# Every proposal prompt has to open with this phrase, verbatim.
MANDATED_PROMPT_PREFIX = (
    "Create a portrait for me using the same face as in the attached file, "
    "100% unchanged, 8K quality"
)

PROPOSAL_COUNT = 4

DEFAULT_UPLOAD_MIME = "image/jpeg"
DEFAULT_PREVIEW_MIME = "image/png"

COPY_FEEDBACK_SECONDS = 2.0

OPTIMIZER_INSTRUCTION = f"""
I am providing two images:
1. A portrait of a model (first image).
2. A product or a product scene (second image).

Your task is to generate {PROPOSAL_COUNT} diverse and professionally optimized photography prompts that place the model from the first image into a setting or context that fits the product from the second image.

Each prompt must strictly adhere to these requirements:
1. It MUST start with the EXACT phrase: "{MANDATED_PROMPT_PREFIX}" (referring to the first image's face).
2. Analyze the product in the second image and create a background, props, or environment that perfectly complements or showcases that product.
3. Suggest a specific high-end camera (e.g., Sony A7R IV, Canon EOS R5, Leica M11).
4. Define a precise focal length (e.g., 35mm f/1.4, 85mm f/1.2, 50mm f/1.8).
5. Define a specific camera angle (e.g., low-angle hero shot, eye-level cinematic, product-focused composition).
6. Describe professional lighting that makes both the model and the product look premium (e.g., high-end commercial lighting, soft box diffusion, atmospheric gels).

Return the response as a JSON array of {PROPOSAL_COUNT} objects.
""".strip()


class UserMessages:
    """User-facing error texts. Causes are logged, never shown."""
    MISSING_IMAGES = "Please upload both a model portrait and a product image."
    OPTIMIZATION_FAILED = "Failed to optimize prompt. Please try again."
    PREVIEW_FAILED = "Image generation failed. Try a different prompt."
