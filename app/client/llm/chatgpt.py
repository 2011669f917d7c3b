from openai import OpenAI

import app.config.config as configs

# Retries would stretch a turn past the generator timeout.
client = OpenAI(api_key=configs.OPENAI_API_KEY, timeout=configs.LLM_TIMEOUT_SEC, max_retries=0)
MODEL = configs.MODEL


def call_llm(prompt_text: str) -> str:
    response = client.chat.completions.create(
        model=MODEL,
        messages=[{"role": "user", "content": prompt_text}],
        temperature=0.4,
    )
    return response.choices[0].message.content or ""
