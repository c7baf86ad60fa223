"""
Prompt Composition for mask-constrained edits.

The edit model has no native mask input: the black/white convention
(black = edit, white = keep) is carried entirely by instruction text.
"""

from typing import Optional

SYSTEM_INSTRUCTION = (
    "You are an expert AI image editor. Your task is to take the user's image and their "
    "text prompt as a direct instruction to modify the image. If a black and white mask "
    "image is also provided, you MUST only apply the edits described in the prompt to the "
    "BLACK areas of the original image. The white areas of the mask indicate parts of the "
    "image that should remain unchanged. You must only return the edited image. Do not "
    "engage in conversation, ask for clarification, or respond with text. Apply the edit "
    "and output the resulting image."
)

MASKED_EDIT_TEMPLATE = (
    "Using the provided black and white mask image, apply the following edit only to the "
    'BLACK areas of the original image, leaving the white areas unchanged: "{prompt}"'
)


def compose_edit_instruction(prompt: str, has_mask: Optional[bool] = False) -> str:
    """
    Build the instruction text part of an edit request.

    Args:
        prompt: The user's edit instruction, embedded verbatim
        has_mask: Whether a mask part accompanies the image

    Returns:
        The prompt itself for unconstrained edits, otherwise the mask-constrained
        instruction quoting the prompt
    """
    if not has_mask:
        return prompt
    return MASKED_EDIT_TEMPLATE.format(prompt=prompt)
