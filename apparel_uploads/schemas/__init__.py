# Schemas package (re-export feature modules for stable imports)
from .uploads.metadata import *
from .uploads.upload import *
from .image_assets.image_asset import *
from .common.common import *
