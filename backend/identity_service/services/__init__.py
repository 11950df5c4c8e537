"""
Services Module

Identity and credential services:
- validation: registration input rules and uniqueness check
- uploader: remote asset storage (Cloudinary)
- assets: local staging of uploaded files with guaranteed cleanup
- credentials: password checks, token minting, rotation and revocation
- sessions: session cookies
- user_flows: registration / login / logout / refresh orchestration
"""

from .assets import AssetState, AssetUploadPipeline, StagedAsset
from .credentials import TokenPair
from .uploader import (
    AssetUploader,
    CloudinaryUploader,
    UploadResult,
    cloudinary_uploader,
    get_uploader,
)
from .validation import RegistrationInput, check_registration_input, validate_registration

__all__ = [
    # Assets
    "AssetState",
    "AssetUploadPipeline",
    "StagedAsset",
    # Uploader
    "AssetUploader",
    "CloudinaryUploader",
    "UploadResult",
    "cloudinary_uploader",
    "get_uploader",
    # Credentials
    "TokenPair",
    # Validation
    "RegistrationInput",
    "check_registration_input",
    "validate_registration",
]
