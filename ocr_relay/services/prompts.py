"""Recognition prompts.

The default prompt is sent verbatim to the vision model; its wording
(Chinese, LaTeX rules, CAPTCHA rules) is what the formatter downstream
expects, so edit both together.
"""

DEFAULT_PROMPT = (
    "不要输出任何额外的解释或说明,禁止输出例如：识别内容、以上内容已严格按照要求进行格式化和转换等相关无意义的文字！"
    "请识别图片中的内容，注意以下要求：\n"
    "对于数学公式和普通文本：\n"
    "1. 所有数学公式和数学符号都必须使用标准的LaTeX格式\n"
    "2. 行内公式使用单个$符号包裹，如：$x^2$\n"
    "3. 独立公式块使用两个$$符号包裹，如：$$\\sum_{i=1}^n i^2$$\n"
    "4. 普通文本保持原样，不要使用LaTeX格式\n"
    "5. 保持原文的段落格式和换行\n"
    "6. 明显的换行使用\\n表示\n"
    "7. 确保所有数学符号都被正确包裹在$或$$中\n\n"
    "对于验证码图片：\n"
    "1. 只输出验证码字符，不要加任何额外解释\n"
    "2. 忽略干扰线和噪点\n"
    "3. 注意区分相似字符，如0和O、1和l、2和Z等\n"
    "4. 验证码通常为4-6位字母数字组合\n\n"
)


def select_prompt(advanced_mode: bool, custom_prompt: str | None) -> str:
    """Custom prompt only when advanced mode is on and a prompt was given."""
    if advanced_mode and custom_prompt:
        return custom_prompt
    return DEFAULT_PROMPT
