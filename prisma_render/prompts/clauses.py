"""Fixed clause texts used by the scene prompt synthesizer

Clause wording is part of the contract with the remote model; keep it stable.
"""

MOOD_ORIGINAL_CLAUSE = (
    "Maintain original lighting, atmosphere, time of day and color grading of the source image"
)
MOOD_CLAUSE_TEMPLATE = "Atmosphere: {mood}"

ENHANCEMENT_CLAUSES = {
    "professional_lighting": "Professional cinematic lighting, global illumination",
    "professional_landscaping": "Professional landscape architecture, lush vegetation",
    "enhance_realism": (
        "Focus on hyper-realistic rendering of people, animals, and vehicles, ensuring they look "
        "like a real photograph with perfect lighting integration, shadows and reflections"
    ),
}

PRESERVATION_CLAUSES = {
    "preserve_lighting": (
        "Strictly preserve the original quantity, position, and style of all existing light "
        "fixtures, lamps, and chandeliers. Do not add or remove lighting fixtures"
    ),
    "preserve_view": (
        "Keep the original external landscape views seen through windows and doors exactly as "
        "they appear in the source image. Do not alter the outside scenery"
    ),
    "preserve_branding": (
        "Strictly preserve all original signage, text, logos, branding, and street signs visible "
        "in the image. Do not distort text or logos"
    ),
}

CUSTOM_PRESERVATION_TEMPLATE = "Do not alter the following characteristics: {text}"

INCLUDE_ELEMENTS_TEMPLATE = "Include exactly: {descriptions}"

INSTALL_FRONT = "direct surface installation"
INSTALL_BACK = "backlighting/cove lighting"
INSTALL_BACK_CURVED = "backlighting/cove lighting hidden behind the structure"

POINT_ELEMENT_TEMPLATE = "a {pose}{label} placed {position}"
SEGMENT_ELEMENT_TEMPLATE = (
    "a linear {label} ({install}) installed strictly extending from the {start} to the {end}"
)
PATH_ELEMENT_TEMPLATE = (
    "a curved {label} roughly following the white guide curve ({install}) starting at {start}"
)

POSE_PREFIXES = {
    "standing": "standing ",
    "sitting": "sitting ",
    "lying": "lying down ",
}

TEMPERATURE_CLAUSE_TEMPLATE = " (Light Color Temperature strictly: {kelvin} Kelvin)"
REFERENCE_CLAUSE_TEMPLATE = (
    " (Use the provided reference image #{index} for the visual style, color, and details of this {label})"
)

LINEAR_GUIDE_SAFETY_CLAUSE = (
    "IMPORTANT: The input image contains BRIGHT WHITE GUIDE LINES. Render lighting effects where "
    "these lines are. For freehand curves, treat the white line as a general reference path, "
    "smoothing out jagged edges. STRICT CONSTRAINT: DO NOT ADD any other LED strips, cove "
    "lighting, or linear lights anywhere else in the scene"
)

VIDEO_DURATION_TEMPLATE = "Video duration: approximately {seconds} seconds"

QUALITY_SUFFIX = "High quality, photorealistic, 8k."
