from django import forms


class ExcelUploadForm(forms.Form):
    archivo = forms.FileField(label="Archivo Excel")
    hoja = forms.CharField(required=False, max_length=120)
    usuario = forms.CharField(required=False, max_length=120)

    def clean_archivo(self):
        archivo = self.cleaned_data["archivo"]
        if not archivo.name.lower().endswith(".xlsx"):
            raise forms.ValidationError("El archivo debe ser un .xlsx")
        return archivo

