from wallnest.exceptions import NotFoundException, ValidationException
from wallnest.wallpapers.constants import WALLPAPER_NOT_FOUND


class WallpaperNotFoundException(NotFoundException):
    def __init__(self, detail: str = WALLPAPER_NOT_FOUND):
        super().__init__(detail=detail)


class InvalidImageException(ValidationException):
    def __init__(self, detail: str = "Unsupported or corrupt image file"):
        super().__init__(detail=detail)
