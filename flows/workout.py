"""AI flow generating a personalised weekly workout plan."""

from typing import List

from pydantic import BaseModel, Field

from core.generation import StructuredPrompt, generate_with_retry


class WorkoutRequest(BaseModel):
    fitness_goal: str = Field(min_length=1)
    experience_level: str = Field(min_length=1)
    equipment: str = Field(min_length=1)
    workout_focus: str = Field(min_length=1)
    duration: int = Field(ge=1, description="Minutes per session.")
    frequency: int = Field(ge=1, description="Sessions per week.")


class Exercise(BaseModel):
    name: str
    sets: str
    reps: str


class DailyWorkout(BaseModel):
    day: str = Field(description='El día del entrenamiento (p. ej., "Día 1").')
    focus: str
    warmup: str
    exercises: List[Exercise]
    cooldown: str


class WorkoutPlan(BaseModel):
    overview: str = Field(description="Un resumen corto y motivador del plan.")
    full_week_workout: List[DailyWorkout]
    nutrition_tips: List[str] = Field(description="3 consejos de nutrición prácticos, en español.")
    mindset_tips: List[str] = Field(description="2 consejos de mentalidad, en español.")


WORKOUT_PROMPT = StructuredPrompt(
    name="generatePersonalizedWorkout",
    input_model=WorkoutRequest,
    output_model=WorkoutPlan,
    system=(
        "Actúa como una entrenadora personal experta llamada Valentina Montero. Tu tono es "
        "motivador, cercano y profesional. Tu única respuesta debe ser un objeto JSON válido que se "
        "ajuste al schema proporcionado, sin texto ni markdown adicional. TODO el texto DEBE estar "
        "en español."
    ),
    template=(
        "Crea un plan de entrenamiento detallado y estructurado en español basado en:\n"
        "- Objetivo de fitness: {fitness_goal}\n"
        "- Nivel de experiencia: {experience_level}\n"
        "- Equipo disponible: {equipment}\n"
        "- Enfoque principal: {workout_focus}\n"
        "- Duración por sesión: {duration} minutos\n"
        "- Frecuencia semanal: {frequency} veces por semana"
    ),
)


async def generate_workout_plan(generator, request: WorkoutRequest, recorder=None) -> WorkoutPlan:
    return await generate_with_retry(generator, WORKOUT_PROMPT, request.model_dump(), recorder)
