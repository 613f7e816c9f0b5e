"""
Magical Girl Schemas
魔法少女生成相关的请求/响应模型
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

MainColor = Literal["red", "orange", "cyan", "blue", "purple", "pink", "yellow", "green"]

# 8 套渐变配色 (first, second)
GRADIENT_COLORS: dict[str, tuple[str, str]] = {
    "red": ("#ff6b6b", "#ee5a6f"),
    "orange": ("#ff922b", "#ffa94d"),
    "cyan": ("#22b8cf", "#66d9e8"),
    "blue": ("#5c7cfa", "#748ffc"),
    "purple": ("#9775fa", "#b197fc"),
    "pink": ("#ff9a9e", "#fecfef"),
    "yellow": ("#f59f00", "#fcc419"),
    "green": ("#51cf66", "#8ce99a"),
}


def _field(name: str, camel: str, description: str):
    return Field(validation_alias=AliasChoices(name, camel), description=description)


class Appearance(BaseModel):
    """外貌特征 (模型输出)"""

    model_config = ConfigDict(populate_by_name=True)

    height: str = _field("height", "height", "身高, 如 152cm")
    weight: str = _field("weight", "weight", "体重, 如 45kg")
    hair_color: str = _field("hair_color", "hairColor", "发色")
    hair_style: str = _field("hair_style", "hairStyle", "发型")
    eye_color: str = _field("eye_color", "eyeColor", "瞳色")
    skin_tone: str = _field("skin_tone", "skinTone", "肤色")
    wearing: str = _field("wearing", "wearing", "服装")
    special_feature: str = _field("special_feature", "specialFeature", "特殊特征")


class AIMagicalGirlOutput(BaseModel):
    """模型应返回的结构, 兼容 camelCase 与 snake_case"""

    model_config = ConfigDict(populate_by_name=True)

    flower_name: str = _field("flower_name", "flowerName", "以花为主题的魔法少女名")
    flower_description: str = _field("flower_description", "flowerDescription", "花名的含义")
    appearance: Appearance
    spell: str = _field("spell", "spell", "变身咒语")
    main_color: MainColor = Field(
        validation_alias=AliasChoices("main_color", "mainColor"),
        description="主色调, 从固定的 8 种颜色中选择",
    )


class GenerationResult(BaseModel):
    """归一化后的生成结果, 与提供商无关"""

    real_name: str
    flower_name: str
    flower_description: str
    appearance: Appearance
    spell: str
    main_color: MainColor
    first_page_color: str
    second_page_color: str
    level: str
    level_emoji: str
    provider: str | None = None
    model: str | None = None


class GenerateRequest(BaseModel):
    """生成请求"""

    name: str = Field(..., description="用户的真实姓名")


# 供 AI 结构化输出使用的 JSON Schema (严格模式: 所有字段必填, 无额外字段)
OUTPUT_JSON_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "flowerName": {"type": "string"},
        "flowerDescription": {"type": "string"},
        "appearance": {
            "type": "object",
            "properties": {
                "height": {"type": "string"},
                "weight": {"type": "string"},
                "hairColor": {"type": "string"},
                "hairStyle": {"type": "string"},
                "eyeColor": {"type": "string"},
                "skinTone": {"type": "string"},
                "wearing": {"type": "string"},
                "specialFeature": {"type": "string"},
            },
            "required": [
                "height",
                "weight",
                "hairColor",
                "hairStyle",
                "eyeColor",
                "skinTone",
                "wearing",
                "specialFeature",
            ],
            "additionalProperties": False,
        },
        "spell": {"type": "string"},
        "mainColor": {"type": "string", "enum": list(GRADIENT_COLORS)},
    },
    "required": ["flowerName", "flowerDescription", "appearance", "spell", "mainColor"],
    "additionalProperties": False,
}
