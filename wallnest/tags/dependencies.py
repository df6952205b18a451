from wallnest.tags.service import TagService


def get_tag_service() -> TagService:
    return TagService()
