from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from presupuestos.models import Comentario, LineaPresupuesto, Presupuesto


class PresupuestoDetailTests(TestCase):
    def setUp(self):
        self.presupuesto = Presupuesto.objects.create(
            referencia="P-100",
            nombre="Cliente Demo",
            taller="T1",
            fecha_creacion=timezone.now() - timedelta(days=5),
        )
        LineaPresupuesto.objects.create(
            presupuesto=self.presupuesto,
            pieza="PASTILLAS",
            concepto="Pastillas de freno",
            costo=40,
            pvp=60,
            importe=60,
        )

    def test_detail_muestra_lineas_y_subestado(self):
        response = self.client.get("/api/presupuestos/P-100")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["estado"], "Abierto")
        self.assertEqual(data["subestado"], "Pendiente")
        self.assertEqual(data["pieza"], "PASTILLAS")
        self.assertEqual(data["concepto"], "Pastillas de freno")
        self.assertEqual(data["margen"], 33)
        self.assertEqual(len(data["lineas"]), 1)

    def test_comentario_reciente_vuelve_a_en_espera(self):
        Comentario.objects.create(
            presupuesto=self.presupuesto, texto="Cliente llamado", usuario="ana"
        )

        response = self.client.get("/api/presupuestos", {"subestado": "En espera"})

        self.assertEqual(response.status_code, 200)
        referencias = [p["referencia"] for p in response.json()["presupuestos"]]
        self.assertEqual(referencias, ["P-100"])

    def test_put_actualiza_cabecera(self):
        response = self.client.put(
            "/api/presupuestos/P-100",
            data='{"nombre": "Cliente Nuevo", "usuario": "ana"}',
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        self.presupuesto.refresh_from_db()
        self.assertEqual(self.presupuesto.nombre, "Cliente Nuevo")
        self.assertEqual(self.presupuesto.modificado_por, "ana")
