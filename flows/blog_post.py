"""AI flow generating a complete, SEO-minded blog post for the coach's site."""

from typing import List

from pydantic import BaseModel, Field, computed_field

from core.errors import SchemaMismatch, expect
from core.generation import StructuredPrompt, generate_with_retry
from core.utils import slugify


class BlogPostRequest(BaseModel):
    existing_titles: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def titles_text(self) -> str:
        if not self.existing_titles:
            return "(ninguno)"
        return "; ".join(self.existing_titles)


class BlogPostOutput(BaseModel):
    title: str = Field(description="El título del artículo, optimizado para SEO y atractivo.")
    excerpt: str = Field(description="Un resumen muy corto (2-3 frases) que incite a hacer clic.")
    content: str = Field(description="El contenido completo del artículo en HTML (<p>, <h2>, <ul>, <li>).")
    image_url: str = Field(description="La URL de una imagen de stock relevante para el artículo.")
    ai_hint: str = Field(description='Dos palabras clave en inglés para la imagen (ej. "fitness woman").')


class BlogPostDraft(BlogPostOutput):
    slug: str


BLOG_POST_PROMPT = StructuredPrompt(
    name="generateBlogPost",
    input_model=BlogPostRequest,
    output_model=BlogPostOutput,
    system="Responde únicamente con el objeto JSON solicitado, sin texto adicional, explicaciones o formato markdown.",
    template=(
        "Actúa como Valentina Montero, experta en fitness, nutrición y coach personal con un tono "
        "cercano, motivador y profesional. Escribe un artículo de blog completo para su sitio web.\n\n"
        "Instrucciones clave:\n"
        "1. Originalidad: elige un tema NUEVO sobre fitness, nutrición, mentalidad o bienestar para "
        "mujeres que NO esté en esta lista de títulos existentes: {titles_text}.\n"
        "2. Longitud y estructura: entre 800 y 1200 palabras, una introducción que enganche, al menos "
        "3-4 secciones con subtítulos <h2>, listas <ul>/<li> con consejos claros y una conclusión que "
        "motive a la acción.\n"
        "3. Formato: el campo 'content' DEBE ser HTML válido.\n"
        "4. Imagen: una URL de picsum.photos (ej. https://picsum.photos/seed/algun-seed/1200/800) y "
        "dos palabras clave en inglés para 'ai_hint'.\n"
        "5. El 'excerpt' debe ser breve y directo (2-3 frases)."
    ),
)


async def generate_blog_post(generator, existing_titles: List[str], recorder=None) -> BlogPostDraft:
    output = await generate_with_retry(
        generator, BLOG_POST_PROMPT, {"existing_titles": existing_titles}, recorder
    )
    slug = slugify(output.title)
    expect(bool(slug), f"{BLOG_POST_PROMPT.name}: title {output.title!r} yields an empty slug", SchemaMismatch)
    return BlogPostDraft(**output.model_dump(), slug=slug)
