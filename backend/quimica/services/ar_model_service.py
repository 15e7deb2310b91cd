"""
Service for AR (3D) models and their links to content blocks
"""
import re
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.models.ar_model import ARModel, ContentModel
from quimica.models.content import Content
from quimica.models.lesson import Lesson

logger = LoggingConfig.get_logger(__name__)

FORMULA_PATTERN = re.compile(r"\b(?:[A-Z][a-z]?\d*)+\b")
AUTO_LINK_LIMIT = 3
NAME_WORDS = 3
NAME_WORD_MIN_LENGTH = 4

_UPDATABLE_FIELDS = (
    "lesson_id", "name", "file_url", "model_type", "description", "keywords",
    "molecule_formula", "category",
)


def formula_tokens(title: str) -> List[str]:
    """Tokens of a title that look like chemical formulas (H2O, CO2, NaCl)"""
    return FORMULA_PATTERN.findall(title or "")


def name_words(title: str) -> List[str]:
    """First title words long enough to search model names with"""
    words = [word for word in (title or "").lower().split() if len(word) >= NAME_WORD_MIN_LENGTH]
    return words[:NAME_WORDS]


class ARModelService:
    """CRUD for 3D models, content links and link suggestions"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def list_models(self) -> List[ARModel]:
        return self.db.query(ARModel).order_by(ARModel.name.asc(), ARModel.id.asc()).all()

    def list_models_by_lesson(self, lesson_id: int) -> List[ARModel]:
        return (
            self.db.query(ARModel)
            .filter(ARModel.lesson_id == lesson_id)
            .order_by(ARModel.name.asc(), ARModel.id.asc())
            .all()
        )

    def get_model(self, model_id: int) -> Optional[ARModel]:
        return self.db.query(ARModel).filter(ARModel.id == model_id).first()

    def _check_values(self, values: Dict):
        if "name" in values:
            values["name"] = (values["name"] or "").strip()
            if not values["name"]:
                raise ValueError("Model name is required")
        if "file_url" in values:
            values["file_url"] = (values["file_url"] or "").strip()
            if not values["file_url"]:
                raise ValueError("Model file URL is required")
        if "keywords" in values:
            keywords = []
            for keyword in values["keywords"] or []:
                keyword = str(keyword).strip()
                if keyword and keyword not in keywords:
                    keywords.append(keyword)
            values["keywords"] = keywords
        if values.get("lesson_id") is not None:
            if not self.db.query(Lesson.id).filter(Lesson.id == values["lesson_id"]).first():
                raise ValueError(f"Lesson {values['lesson_id']} not found")

    def create_model(self, name: str, file_url: str, created_by: Optional[UUID] = None, **fields) -> ARModel:
        """
        Register a 3D model

        Raises:
            ValueError: If name or file URL is blank, or the lesson does not exist
        """
        values = {key: value for key, value in fields.items() if key in _UPDATABLE_FIELDS}
        values["name"] = name
        values["file_url"] = file_url
        values.setdefault("keywords", [])
        self._check_values(values)

        model = ARModel(created_by=created_by, **values)
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating model: {e}", exc_info=True)
            raise
        logger.info(f"Created AR model {model.id}: {model.name}")
        return model

    def update_model(self, model_id: int, **fields) -> Optional[ARModel]:
        model = self.get_model(model_id)
        if not model:
            return None
        values = {key: value for key, value in fields.items() if key in _UPDATABLE_FIELDS}
        self._check_values(values)
        for key, value in values.items():
            setattr(model, key, value)
        try:
            self.db.commit()
            self.db.refresh(model)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating model {model_id}: {e}", exc_info=True)
            raise
        return model

    def delete_model(self, model_id: int) -> bool:
        model = self.get_model(model_id)
        if not model:
            return False
        try:
            self.db.delete(model)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting model {model_id}: {e}", exc_info=True)
            raise
        logger.info(f"Deleted AR model {model_id}")
        return True

    # ------------------------------------------------------------------
    # Content links
    # ------------------------------------------------------------------

    def _get_link(self, content_id: int, model_id: int) -> Optional[ContentModel]:
        return self.db.query(ContentModel).filter(
            ContentModel.content_id == content_id,
            ContentModel.model_id == model_id,
        ).first()

    def list_models_by_content(self, content_id: int) -> List[ARModel]:
        """Models linked to a content, in link order"""
        return (
            self.db.query(ARModel)
            .join(ContentModel, ContentModel.model_id == ARModel.id)
            .filter(ContentModel.content_id == content_id)
            .order_by(ContentModel.order.asc(), ARModel.id.asc())
            .all()
        )

    def get_primary_model(self, content_id: int) -> Optional[ARModel]:
        return (
            self.db.query(ARModel)
            .join(ContentModel, ContentModel.model_id == ARModel.id)
            .filter(ContentModel.content_id == content_id, ContentModel.is_primary.is_(True))
            .first()
        )

    def link_model(
        self,
        content_id: int,
        model_id: int,
        order: Optional[int] = None,
        is_primary: bool = False,
    ) -> ContentModel:
        """
        Link a model to a content

        Raises:
            ValueError: If content or model is missing, or they are already linked
        """
        if not self.db.query(Content.id).filter(Content.id == content_id).first():
            raise ValueError(f"Content {content_id} not found")
        if not self.get_model(model_id):
            raise ValueError(f"Model {model_id} not found")
        if self._get_link(content_id, model_id):
            raise ValueError("Model is already linked to this content")

        if order is None:
            order = self.db.query(func.count()).select_from(ContentModel).filter(
                ContentModel.content_id == content_id
            ).scalar() or 0

        if is_primary:
            self._clear_primary(content_id)
        link = ContentModel(content_id=content_id, model_id=model_id, order=order, is_primary=is_primary)
        try:
            self.db.add(link)
            self.db.commit()
            self.db.refresh(link)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error linking model {model_id} to content {content_id}: {e}", exc_info=True)
            raise
        return link

    def unlink_model(self, content_id: int, model_id: int) -> bool:
        link = self._get_link(content_id, model_id)
        if not link:
            return False
        try:
            self.db.delete(link)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error unlinking model {model_id} from content {content_id}: {e}", exc_info=True)
            raise
        return True

    def _clear_primary(self, content_id: int):
        self.db.query(ContentModel).filter(ContentModel.content_id == content_id).update(
            {ContentModel.is_primary: False}, synchronize_session="fetch"
        )

    def set_primary_model(self, content_id: int, model_id: int) -> Optional[ContentModel]:
        """Make one linked model the primary one; None if they are not linked"""
        link = self._get_link(content_id, model_id)
        if not link:
            return None
        try:
            self._clear_primary(content_id)
            link.is_primary = True
            self.db.commit()
            self.db.refresh(link)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error setting primary model of content {content_id}: {e}", exc_info=True)
            raise
        return link

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def suggest_models(
        self,
        title: str,
        tags: Optional[Iterable[str]] = None,
        content_type: Optional[str] = None,
    ) -> List[ARModel]:
        """
        Models that likely illustrate a content block

        Candidates come, in this order, from keywords shared with the tags,
        formulas found in the title, a category equal to the content type and
        names containing one of the first long title words. Each model is
        returned once, at its first position.
        """
        models = self.list_models()
        found: List[ARModel] = []

        def add(candidates):
            for model in candidates:
                if all(model.id != seen.id for seen in found):
                    found.append(model)

        tags = {tag for tag in (tags or []) if tag}
        if tags:
            add(model for model in models if tags.intersection(model.keywords or []))

        for token in formula_tokens(title):
            token = token.lower()
            add(
                model for model in models
                if model.molecule_formula and model.molecule_formula.lower() == token
            )

        if content_type:
            add(model for model in models if model.category == content_type)

        for word in name_words(title):
            add(model for model in models if word in (model.name or "").lower())

        return found

    def auto_link_models(self, content_id: int) -> int:
        """
        Link the best suggestions to a content, the first one as primary

        Returns:
            Number of links created; existing links are skipped
        """
        content = self.db.query(Content).filter(Content.id == content_id).first()
        if not content:
            return 0

        suggestions = self.suggest_models(content.title, content.tags, content.content_type)
        linked = 0
        for index, model in enumerate(suggestions[:AUTO_LINK_LIMIT]):
            if self._get_link(content_id, model.id):
                continue
            self.link_model(content_id, model.id, order=index, is_primary=index == 0)
            linked += 1

        logger.info(f"Auto-linked {linked} models to content {content_id}")
        return linked
