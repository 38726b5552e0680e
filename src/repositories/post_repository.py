from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import DatabaseError, SlugAlreadyExistsError
from ..models.post import Post


def _is_slug_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "slug" in message and ("unique" in message or "duplicate" in message)


class PostRepository:
    def __init__(self, session: Session):
        self.session = session

    def exists_slug(self, slug: str) -> bool:
        return self.session.query(Post.id).filter(Post.slug == slug).first() is not None

    def create(
        self,
        title: str,
        slug: str,
        excerpt: Optional[str],
        content: str,
        status: str,
        published_at: Optional[datetime],
        author_id: str,
        category_id: str,
        structured_data: Optional[Dict[str, Any]] = None,
    ) -> Post:
        """
        Insert a post and flush it so the id is assigned. Does not commit.

        On a slug collision the session is rolled back and SlugAlreadyExistsError
        is raised; any other store failure rolls back and surfaces as DatabaseError.
        """
        post = Post(
            title=title,
            slug=slug,
            excerpt=excerpt,
            content=content,
            status=status,
            published_at=published_at,
            author_id=author_id,
            category_id=category_id,
            structured_data=structured_data,
        )
        self.session.add(post)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            if _is_slug_violation(e):
                raise SlugAlreadyExistsError(slug) from e
            raise DatabaseError(f"Failed to create post: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to create post: {e}") from e
        return post
