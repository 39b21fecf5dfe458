"""Prompts for OpenAI models."""

ANALYZE_PROMPT = """
You are an expert nutritionist. Analyze the photo of the food and identify the dish.
Then estimate its nutritional content: calories, protein, carbohydrates, sugar and fat.

Write the nutrition estimate as one line in this format:
"Calories: 650, Protein: 25g, Carbohydrates: 70g, Sugar: 9g, Fat: 22g"
Ranges like "600-700" are allowed.

Return JSON strictly in this format:

{
  "dish_identification": "...",
  "estimated_nutritional_content": "..."
}

⚠️ No text outside JSON.
"""

RATING_PROMPT = """
You are a nutritionist providing a health rating for food.

Based on the nutritional information below, give a health score between 1 and 10
(inclusive), where 1 is very unhealthy and 10 is very healthy, and a brief
explanation for the score.

Food: {food_name}
Calories: {calories} kcal
Protein: {protein} g
Carbohydrates: {carbohydrates} g
Sugar: {sugar} g
Fat: {fat} g
{calorie_note}
Return JSON strictly in this format:

{{
  "health_score": 7,
  "explanation": "..."
}}

⚠️ No text outside JSON.
"""

# Appended to RATING_PROMPT when stated calories contradict the macronutrients
CALORIE_CONTRADICTION_NOTE = """
IMPORTANT: the stated calorie count ({calories} kcal) contradicts the macronutrients.
Using 4 kcal/g for protein and carbohydrates and 9 kcal/g for fat they add up to
{recalculated} kcal. Point out this contradiction in the explanation and base the
score on {recalculated} kcal.
"""

ALTERNATIVES_PROMPT = """
For the food "{identified_food}", suggest {count} healthy cooked alternatives and
{count} healthy packaged alternatives that are cheap and safer to eat.

For each cooked alternative give a short, simple recipe.
For each packaged alternative give an estimated price in {currency}.

Return JSON strictly in this format:

{{
  "cooked_alternatives": [
    {{"name": "...", "recipe": "..."}}
  ],
  "packaged_alternatives": [
    {{"name": "...", "price": "..."}}
  ]
}}

⚠️ No text outside JSON.
"""

SIMPLE_ALTERNATIVES_PROMPT = """
For the food "{identified_food}", suggest {count} healthier alternative foods.

Return JSON strictly in this format:

{{
  "suggestions": ["...", "..."]
}}

⚠️ No text outside JSON.
"""

IMAGE_PROMPT = (
    "A bright, appetizing food photograph of {name}, "
    "served on a plate, natural light, no text."
)
