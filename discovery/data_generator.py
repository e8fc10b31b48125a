"""
Sample data generator for the discovery engine
"""
import json
import random
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from discovery.data_schemas import (
    AlbumVisibility, EducationLevel, Gender, HabitPreference, InteractionState,
    MaritalStatus, PoolEntry, Preference, Profile,
)


class DataGenerator:
    """Seeded generator of profiles, preferences and interaction states"""

    def __init__(self, seed: Optional[int] = None, now: Optional[datetime] = None):
        self.random = random.Random(seed)
        self.now = now or datetime.now(timezone.utc)

        self.names_male = [
            "Aarav", "Vivaan", "Aditya", "Arjun", "Rohan", "Karan", "Rahul", "Vikram",
            "Imran", "Joseph", "Harpreet", "Siddharth", "Nikhil", "Anil", "Farhan",
        ]

        self.names_female = [
            "Ananya", "Diya", "Priya", "Kavya", "Meera", "Aisha", "Sneha", "Pooja",
            "Riya", "Mary", "Simran", "Neha", "Fatima", "Lakshmi", "Isha",
        ]

        # city -> (state, latitude, longitude)
        self.cities: Dict[str, Tuple[str, float, float]] = {
            "Mumbai": ("Maharashtra", 19.0760, 72.8777),
            "Pune": ("Maharashtra", 18.5204, 73.8567),
            "Thane": ("Maharashtra", 19.2183, 72.9781),
            "Delhi": ("Delhi", 28.7041, 77.1025),
            "Bengaluru": ("Karnataka", 12.9716, 77.5946),
            "Mysuru": ("Karnataka", 12.2958, 76.6394),
            "Chennai": ("Tamil Nadu", 13.0827, 80.2707),
            "Hyderabad": ("Telangana", 17.3850, 78.4867),
            "Kolkata": ("West Bengal", 22.5726, 88.3639),
            "Ahmedabad": ("Gujarat", 23.0225, 72.5714),
            "Jaipur": ("Rajasthan", 26.9124, 75.7873),
            "Kochi": ("Kerala", 9.9312, 76.2673),
        }

        self.religions = {
            "Hindu": ["Brahmin", "Kshatriya", "Vaishya", "Maratha", "Nair"],
            "Muslim": ["Sunni", "Shia"],
            "Christian": ["Catholic", "Protestant"],
            "Sikh": ["Jat", "Khatri"],
            "Jain": ["Digambar", "Shwetambar"],
        }

        self.mother_tongues = ["Hindi", "Marathi", "Tamil", "Telugu", "Kannada",
                               "Bengali", "Gujarati", "Malayalam", "Punjabi"]

        self.occupations = [
            "Software Engineer", "Doctor", "Lawyer", "Teacher", "Architect", "Accountant",
            "Designer", "Business Owner", "Civil Servant", "Pharmacist", "Banker",
        ]

        self.hobbies = ["Reading", "Travel", "Music", "Cooking", "Cricket", "Yoga",
                        "Photography", "Dancing", "Hiking", "Painting"]

        self.diets = ["Vegetarian", "Non-Vegetarian", "Eggetarian", "Vegan"]
        self.habits = ["No", "Occasionally", "Yes"]

    def _choice_weighted(self, options: Dict[str, float]) -> str:
        return self.random.choices(list(options.keys()), weights=list(options.values()))[0]

    def generate_profile(self, profile_id: str, gender: Optional[Gender] = None) -> Profile:
        gender = gender or self.random.choice(list(Gender))
        age = self.random.randint(21, 40)
        birthday = date(self.now.year - age, self.random.randint(1, 12), self.random.randint(1, 28))

        name = self.random.choice(self.names_male if gender == Gender.MALE else self.names_female)
        city = self.random.choice(list(self.cities))
        state, lat, lon = self.cities[city]
        religion = self.random.choice(list(self.religions))

        height = self.random.randint(165, 190) if gender == Gender.MALE else self.random.randint(150, 175)
        photo_count = self.random.randint(0, 6)

        return Profile(
            id=profile_id,
            full_name=name,
            gender=gender,
            date_of_birth=birthday,
            height_cm=height,
            marital_status=self._choice_weighted({
                MaritalStatus.SINGLE.value: 0.8,
                MaritalStatus.DIVORCED.value: 0.12,
                MaritalStatus.WIDOWED.value: 0.04,
                MaritalStatus.AWAITING_DIVORCE.value: 0.04,
            }),
            religion=religion,
            caste=self.random.choice(self.religions[religion]),
            mother_tongue=self.random.choice(self.mother_tongues),
            diet=self.random.choice(self.diets),
            drinking_habit=self._choice_weighted({"No": 0.6, "Occasionally": 0.3, "Yes": 0.1}),
            smoking_habit=self._choice_weighted({"No": 0.85, "Occasionally": 0.1, "Yes": 0.05}),
            hobbies=self.random.sample(self.hobbies, k=self.random.randint(1, 4)),
            education_level=self.random.choice([level for level in EducationLevel
                                                if level != EducationLevel.NOT_SPECIFIED]),
            occupation=self.random.choice(self.occupations),
            annual_income=float(self.random.randrange(300_000, 5_000_000, 50_000)),
            country="India",
            state=state,
            city=city,
            # jitter within roughly 10 km of the city centre
            latitude=round(lat + self.random.uniform(-0.1, 0.1), 4),
            longitude=round(lon + self.random.uniform(-0.1, 0.1), 4),
            is_verified=self.random.random() < 0.6,
            is_premium=self.random.random() < 0.25,
            last_active=self.now - timedelta(minutes=self.random.randint(0, 60 * 24 * 14)),
            created_at=self.now - timedelta(hours=self.random.randint(0, 24 * 60)),
            photos=[f"/uploads/{profile_id}/photo_{i + 1}.jpg" for i in range(photo_count)],
            album_visibility=(AlbumVisibility.ONLY_LIKED if self.random.random() < 0.1
                              else AlbumVisibility.LIKED_AND_PREMIUM),
        )

    def generate_preference(self, profile: Profile) -> Preference:
        age = profile.age_on(self.now.date())
        age_range = self.random.randint(3, 8)

        religions = [profile.religion] if profile.religion and self.random.random() > 0.4 else []
        return Preference(
            profile_id=profile.id,
            min_age=max(18, age - age_range),
            max_age=min(120, age + age_range),
            min_height_cm=self.random.choice([None, 150, 155, 160]),
            max_height_cm=self.random.choice([None, 185, 195]),
            religions=religions,
            mother_tongues=[profile.mother_tongue] if self.random.random() > 0.8 else [],
            marital_statuses=[MaritalStatus.SINGLE] if self.random.random() > 0.5 else [],
            states=[profile.state] if self.random.random() > 0.7 else [],
            min_education_level=self.random.choice([None, EducationLevel.BACHELORS, EducationLevel.MASTERS]),
            diet=self.random.choice([None, profile.diet, "No Preference"]),
            drinking=self.random.choice([None] + list(HabitPreference)),
            smoking=self.random.choice([None] + list(HabitPreference)),
            verified_only=self.random.random() < 0.1,
            auto_match_enabled=self.random.random() < 0.9,
            match_score_threshold=self.random.choice([0, 0, 40, 60]),
        )

    def generate_interaction(self) -> InteractionState:
        liked = self.random.random() < 0.2
        liked_back = liked and self.random.random() < 0.5
        matched = liked_back and self.random.random() < 0.7
        return InteractionState(
            liked=liked,
            liked_by_candidate=liked_back,
            viewed=liked or self.random.random() < 0.3,
            matched=matched,
            blocked=not liked and self.random.random() < 0.02,
            has_conversation=matched and self.random.random() < 0.6,
            matched_at=self.now - timedelta(days=self.random.randint(0, 30)) if matched else None,
        )

    def generate_pool(self, size: int, prefix: str = "candidate") -> List[PoolEntry]:
        """Candidate pool with random interaction state toward one requester"""
        return [
            PoolEntry(profile=self.generate_profile(f"{prefix}_{i + 1:04d}"),
                      interaction=self.generate_interaction())
            for i in range(size)
        ]

    def generate_sample_data(self, num_profiles: int = 50, num_interactions: int = 100,
                             output_dir: str = "data"):
        print(f"Generating {num_profiles} profiles...")

        profiles = []
        preferences = []
        for i in range(num_profiles):
            profile = self.generate_profile(f"profile_{i + 1:03d}")
            profiles.append(profile)
            preferences.append(self.generate_preference(profile))

        print(f"Generating {num_interactions} interactions...")
        interactions = []
        for _ in range(num_interactions):
            a = self.random.choice(profiles)
            b = self.random.choice(profiles)
            if a.id != b.id and a.gender != b.gender:
                interactions.append({
                    "requester_id": a.id,
                    "candidate_id": b.id,
                    "state": self.generate_interaction().model_dump(mode="json"),
                })

        print("Saving data to files...")
        with open(f"{output_dir}/profiles.json", "w", encoding="utf-8") as f:
            json.dump([p.model_dump(mode="json") for p in profiles], f, ensure_ascii=False, indent=2)

        with open(f"{output_dir}/preferences.json", "w", encoding="utf-8") as f:
            json.dump([p.model_dump(mode="json") for p in preferences], f, ensure_ascii=False, indent=2)

        with open(f"{output_dir}/interactions.json", "w", encoding="utf-8") as f:
            json.dump(interactions, f, ensure_ascii=False, indent=2)

        print("Generated data saved:")
        print(f"  - {len(profiles)} profiles")
        print(f"  - {len(preferences)} preferences")
        print(f"  - {len(interactions)} interactions")

        return profiles, preferences, interactions


if __name__ == "__main__":
    import argparse
    import os

    parser = argparse.ArgumentParser(description="Generate sample data for the discovery engine")
    parser.add_argument("--generate-sample", action="store_true", help="Generate sample data")
    parser.add_argument("--profiles", type=int, default=50, help="Number of profiles to generate")
    parser.add_argument("--interactions", type=int, default=100, help="Number of interactions to generate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument("--output-dir", default="data", help="Directory for the JSON files")

    args = parser.parse_args()

    if args.generate_sample:
        os.makedirs(args.output_dir, exist_ok=True)

        generator = DataGenerator(seed=args.seed)
        generator.generate_sample_data(args.profiles, args.interactions, args.output_dir)
