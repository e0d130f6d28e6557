from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base

class Survey(Base):
    __tablename__ = "surveys"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    type = Column(String(20), nullable=False, default="unweighted")          # weighted | unweighted
    survey_category = Column(String(20), nullable=False, default="calculate")  # calculate | non_calculate
    period_type = Column(String(20), nullable=False, default="quarterly")
    period_year = Column(Integer, nullable=False)
    period = Column(String(10), nullable=True)  # short code: Q1..Q4, S1/S2, TAHUN
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    indicators = relationship("Indicator", back_populates="survey", cascade="all, delete-orphan",
                              order_by="Indicator.order_index")
    demographic_fields = relationship("DemographicField", back_populates="survey", cascade="all, delete-orphan",
                                      order_by="DemographicField.field_order")
    responses = relationship("Response", back_populates="survey", cascade="all, delete-orphan")

class Indicator(Base):
    __tablename__ = "indicators"
    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    weight = Column(Integer, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)
    survey = relationship("Survey", back_populates="indicators")
    questions = relationship("Question", back_populates="indicator", cascade="all, delete-orphan",
                             order_by="Question.order_index")

class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True, index=True)
    indicator_id = Column(Integer, ForeignKey("indicators.id", ondelete="CASCADE"), index=True, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    text = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="likert-4")
    required = Column(Boolean, default=True)
    weight = Column(Integer, nullable=False, default=0)
    options = Column(Text, nullable=True)  # JSON array
    indicator = relationship("Indicator", back_populates="questions")
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan")

class DemographicField(Base):
    __tablename__ = "demographic_fields"
    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), index=True, nullable=False)
    label = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="text")
    required = Column(Boolean, default=True)
    options = Column(Text, nullable=True)  # JSON array
    field_order = Column(Integer, nullable=False, default=1)
    survey = relationship("Survey", back_populates="demographic_fields")

class Respondent(Base):
    __tablename__ = "respondents"
    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    periode_survei = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class Response(Base):
    __tablename__ = "responses"
    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), index=True, nullable=False)
    respondent_id = Column(Integer, ForeignKey("respondents.id", ondelete="SET NULL"), nullable=True)
    periode_survei = Column(String(20), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    survey = relationship("Survey", back_populates="responses")
    respondent = relationship("Respondent")
    answers = relationship("Answer", back_populates="response", cascade="all, delete-orphan")
    demographic_responses = relationship("DemographicResponse", back_populates="response",
                                         cascade="all, delete-orphan")

class Answer(Base):
    __tablename__ = "answers"
    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(Integer, ForeignKey("responses.id", ondelete="CASCADE"), index=True, nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False)
    score = Column(Float, nullable=True)   # Likert answers
    value = Column(Text, nullable=True)    # everything else, JSON for lists
    response = relationship("Response", back_populates="answers")
    question = relationship("Question", back_populates="answers")

class DemographicResponse(Base):
    __tablename__ = "demographic_responses"
    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(Integer, ForeignKey("responses.id", ondelete="CASCADE"), index=True, nullable=False)
    field_id = Column(Integer, ForeignKey("demographic_fields.id", ondelete="CASCADE"), index=True, nullable=False)
    value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    response = relationship("Response", back_populates="demographic_responses")
