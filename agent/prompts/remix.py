"""
Platform rewrite prompts for the AI path.

Each template lists the stylistic requirements for one platform and ends with
the original content. Ids without a template use GENERIC_TEMPLATE with the
platform's display label.
"""
from agent.platforms import Platform

SYSTEM = "你是一位专业的内容创作者，擅长将内容转化为不同平台风格。"

PLATFORM_TEMPLATES: dict[Platform, str] = {
    Platform.XIAOHONGSHU: """将以下内容改写为符合小红书平台风格的内容：
要求：
1. 使用活泼友好的语气，加入适当的emoji
2. 结构清晰，段落分明
3. 加入相关的话题标签
4. 内容要吸引眼球，适合年轻人阅读

原始内容：
{content}""",

    Platform.JIKE: """将以下内容改写为符合即刻平台风格的内容：
要求：
1. 语言简洁有力，充满活力
2. 保持内容的核心信息
3. 加入相关的话题标签
4. 适合手机端快速阅读

原始内容：
{content}""",

    Platform.X: """将以下内容改写为符合X (Twitter)平台风格的内容：
要求：
1. 简洁明了，控制在280字符以内
2. 使用英文撰写
3. 加入相关的话题标签
4. 语言生动，具有传播性

原始内容：
{content}""",

    Platform.WECHAT: """将以下内容改写为符合微信公众号平台风格的内容：
要求：
1. 结构完整，层次分明
2. 语言正式且易懂
3. 保持专业度
4. 适合长篇阅读

原始内容：
{content}""",
}

GENERIC_TEMPLATE = "将以下内容改写为适合{platform_name}平台风格的内容：\n\n{content}"


def render(platform: Platform, content: str) -> str:
    return PLATFORM_TEMPLATES[platform].format(content=content)


def render_generic(platform_name: str, content: str) -> str:
    return GENERIC_TEMPLATE.format(platform_name=platform_name, content=content)
