from .media import MediaKind
from .post import Post
from .story import Story
from .user import User
