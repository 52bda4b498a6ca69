# ellarises/models/surveys.py
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from ellarises.db import Base

NPS_BUCKETS = ("promoter", "passive", "detractor")


class Survey(Base):
    __tablename__ = "surveys"

    survey_id = Column(Integer, primary_key=True, index=True)
    # One survey per registration; the unique index backs the pre-insert check.
    registration_id = Column(
        Integer,
        ForeignKey("registrations.registration_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    survey_satisfaction_score = Column(Integer, nullable=False)
    survey_usefulness_score = Column(Integer, nullable=False)
    survey_instructor_score = Column(Integer, nullable=False)
    survey_recommendation_score = Column(Integer, nullable=False)
    survey_overall_score = Column(Numeric(4, 2), nullable=False)
    survey_nps_bucket = Column(String(10), nullable=False)
    survey_comments = Column(Text, nullable=True)
    survey_submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    registration = relationship("Registration", back_populates="survey")
    responses = relationship(
        "SurveyQuestionResponse",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="SurveyQuestionResponse.response_id",
    )


class SurveyQuestionResponse(Base):
    __tablename__ = "survey_question_responses"

    response_id = Column(Integer, primary_key=True)
    survey_id = Column(Integer, ForeignKey("surveys.survey_id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(String(500), nullable=False)
    answer = Column(Text, nullable=True)

    survey = relationship("Survey", back_populates="responses")
