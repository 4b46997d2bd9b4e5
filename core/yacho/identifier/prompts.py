"""Prompt texts and worked examples for the bird-identification agent."""

from yacho.identifier.schemas import BirdIdentification

IDENTIFY_SYSTEM_PROMPT = (
    "You are an expert in identifying wild birds. You are responsible for identifying wild "
    "birds from user input while using a tool to increase the reliabilityScore to 95. Lower "
    "the confidence when there are other potential wild bird candidates and it's difficult to "
    "identify a specific one. Supports wild birds in Japan."
)

TOOL_RESULT_SYSTEM_PROMPT = (
    "You are an expert in identifying wild birds. Please identify the species of wild bird "
    "from the user input. You are responsible for identifying wild birds from user input while "
    "using a tool to increase the reliabilityScore to 95. Lower the confidence when there are "
    "other potential wild bird candidates and it's difficult to identify a specific one."
)

FINAL_ANSWER_PROMPT = "Please identify the wild bird based on the conversation history"

FINISHED_MESSAGE = "Identified a wild bird. Chat finished"


def candidate_list_prompt(user_messages: list[str]) -> str:
    joined = "\n".join(user_messages)
    return (
        f"{joined}\n---\n"
        "Based on the above input and conversation history, please list about 3 possible "
        "wild bird candidates"
    )


def structured_prompt(candidates: str) -> str:
    return (
        f'"{candidates}"\n'
        "Based on the conversation history, please select one top candidate and provide an "
        "explanation about it."
    )


def feedback_prompt(tool_names: list[str]) -> str:
    return (
        "Don't chat with plain text! Call one of the available tools, instead: "
        f"{', '.join(tool_names)}."
    )


EXAMPLES = [
    BirdIdentification(
        reliabilityScore=35,
        birdName="スズメ (Passer montanus)",
        description=(
            "全長約14cm。頭部は茶褐色で黒い過眼線があり、頬に黒い斑点が特徴的。背中は茶褐色で黒い縦斑、"
            "腹部は灰白色。都市部から農村部まで幅広く生息し、群れで行動することが多い。"
        ),
    ),
    BirdIdentification(
        reliabilityScore=48,
        birdName="ヒヨドリ (Hypsipetes amaurotis)",
        description=(
            "全長約28cm。全体的に灰褐色で、頭部がやや黒っぽく、頬から耳羽にかけて褐色。尾は長めで先端が白い。"
            "鳴き声が特徴的で「ヒーヨ、ヒーヨ」と聞こえる。公園や住宅地でよく見られる。"
        ),
    ),
    BirdIdentification(
        reliabilityScore=72,
        birdName="メジロ (Zosterops japonicus)",
        description=(
            "全長約12cm。背中は黄緑色、腹部は白色で脇腹に黄色味がある。目の周りの白いアイリングが最大の特徴。"
            "花の蜜や果実を好み、梅や桜の花によく訪れる。小さな群れで行動することが多い。"
        ),
    ),
]
