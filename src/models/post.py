from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func

from ..core.database import Base


class Post(Base):
    """
    Public blog post. Owned by the post CRUD subsystem; the pipeline only
    creates rows through PostRepository.create.
    """
    __tablename__ = "posts"
    __table_args__ = (UniqueConstraint("slug", name="uq_posts_slug"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False)
    slug = Column(String(600), nullable=False)
    excerpt = Column(Text)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")
    published_at = Column(DateTime)
    author_id = Column(String(100), nullable=False)
    category_id = Column(String(100), nullable=False)
    structured_data = Column(JSON)
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<Post(id={self.id}, slug='{self.slug}', status='{self.status}')>"
