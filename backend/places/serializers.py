from rest_framework import serializers

from .models import Perk, Place, RefundTerm


class RefundTermSerializer(serializers.ModelSerializer):
    class Meta:
        model = RefundTerm
        fields = ["window_hours", "refund_percentage"]


class PerkSerializer(serializers.ModelSerializer):
    class Meta:
        model = Perk
        fields = ["name", "is_paid", "price"]

    def validate(self, attrs):
        if not attrs.get("is_paid") and attrs.get("price"):
            raise serializers.ValidationError({"price": "Free perks cannot carry a price."})
        return attrs


class PlaceSerializer(serializers.ModelSerializer):
    owner = serializers.PrimaryKeyRelatedField(read_only=True)
    refund_options = RefundTermSerializer(source="refund_terms", many=True, required=False)
    perks = PerkSerializer(many=True, required=False)

    class Meta:
        model = Place
        fields = [
            "id",
            "owner",
            "title",
            "address",
            "currency",
            "hourly_rate",
            "minimum_hours",
            "full_day_hours",
            "full_day_discount_price",
            "cooldown_minutes",
            "refund_options",
            "perks",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "owner", "created_at", "updated_at"]

    def validate(self, attrs):
        minimum = attrs.get("minimum_hours", getattr(self.instance, "minimum_hours", 1))
        full_day = attrs.get("full_day_hours", getattr(self.instance, "full_day_hours", 8))
        if full_day < minimum:
            raise serializers.ValidationError(
                {"full_day_hours": "Full day hours must not be shorter than the minimum booking."}
            )

        windows = [term["window_hours"] for term in attrs.get("refund_terms", [])]
        if len(windows) != len(set(windows)):
            raise serializers.ValidationError({"refund_options": "Each cancellation window may appear only once."})

        names = [perk["name"] for perk in attrs.get("perks", [])]
        if len(names) != len(set(names)):
            raise serializers.ValidationError({"perks": "Perk names must be unique."})
        return attrs

    def create(self, validated_data):
        refund_terms = validated_data.pop("refund_terms", [])
        perks = validated_data.pop("perks", [])
        place = Place.objects.create(**validated_data)
        self._replace_refund_terms(place, refund_terms)
        self._replace_perks(place, perks)
        return place

    def update(self, instance, validated_data):
        refund_terms = validated_data.pop("refund_terms", None)
        perks = validated_data.pop("perks", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if refund_terms is not None:
            self._replace_refund_terms(instance, refund_terms)
        if perks is not None:
            self._replace_perks(instance, perks)
        return instance

    def _replace_refund_terms(self, place: Place, terms):
        place.refund_terms.all().delete()
        ordered = sorted(terms, key=lambda term: term["window_hours"], reverse=True)
        RefundTerm.objects.bulk_create(
            [RefundTerm(place=place, position=index, **term) for index, term in enumerate(ordered)]
        )

    def _replace_perks(self, place: Place, perks):
        place.perks.all().delete()
        Perk.objects.bulk_create(
            [Perk(place=place, position=index, **perk) for index, perk in enumerate(perks)]
        )
