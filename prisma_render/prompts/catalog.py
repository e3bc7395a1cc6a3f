"""Element option catalogs offered by the editor"""

PEOPLE_OPTIONS = ['Man', 'Woman', 'Child', 'Elderly', 'Business Person', 'Cyclist']
ANIMAL_OPTIONS = ['Dog', 'Cat', 'Birds', 'Deer', 'Horse']
VEHICLE_OPTIONS = ['Luxury Car', 'SUV', 'Sports Car', 'Motorcycle', 'Bus', 'Truck']
PLANT_OPTIONS = ['Tree', 'Bush', 'Flower Bed', 'Grass', 'Potted Plant', 'Hanging Pot', 'Hedge', 'Palm Tree']
LIGHTING_OPTIONS = ['Sconce', 'Spotlight', 'General Area Light', 'LED Strip', 'LED Profile']
FURNITURE_OPTIONS = ['Bench', 'Chair', 'Table', 'Sofa', 'Sun Lounger', 'Parasol', 'Outdoor Dining Set', 'Trash Bin', 'Bollard']

ELEMENT_OPTIONS = {
    "person": PEOPLE_OPTIONS,
    "animal": ANIMAL_OPTIONS,
    "vehicle": VEHICLE_OPTIONS,
    "plant": PLANT_OPTIONS,
    "lighting": LIGHTING_OPTIONS,
    "furniture": FURNITURE_OPTIONS,
}

# Labels placed by drawing a line or freehand path instead of dropping a pin
LINEAR_LABELS = ('LED Strip', 'LED Profile')

MOODS = ['Original', 'Day', 'Sunny', 'Summer', 'Spring', 'Dusk', 'Night', 'Starry Night', 'Rainy']

VIDEO_DURATIONS = ['3', '5', '10', 'custom']


def is_linear_label(label: str) -> bool:
    return label in LINEAR_LABELS
